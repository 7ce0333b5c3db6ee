"""Knowledge-base tools exposed to the agent and the MCP surface.

Handlers never raise: every failure is turned into a readable message so
the calling model can relay it.
"""
from typing import Optional

import structlog
from pydantic import BaseModel, ConfigDict, Field

from aidemo.rag.ingest import get_ingestion_pipeline
from aidemo.rag.orchestrator import get_orchestrator
from aidemo.tools.registry import Tool, register_tool

logger = structlog.get_logger()

DEFAULT_SEARCH_TOP_K = 4
SUMMARY_CHARS = 200


class LoadAllDocumentsInput(BaseModel):
    """No arguments."""


class LoadDocumentInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    file_path: str = Field(..., alias="filePath", description="文件的完整路径")


class AnswerQuestionInput(BaseModel):
    question: str = Field(..., description="用户的问题")


class SearchDocumentsInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    query: str = Field(..., description="查询文本")
    top_k: Optional[int] = Field(
        default=None,
        alias="topK",
        description="返回的文档数量（可选，默认4）",
    )


async def load_all_documents_handler(input_data: LoadAllDocumentsInput) -> str:
    logger.info("tool_load_all_documents")
    try:
        count = await get_ingestion_pipeline().ingest_all()
        return f"成功加载 {count} 个文档到知识库"
    except Exception as e:
        logger.error("tool_load_all_documents_failed", error=str(e))
        return f"加载文档失败: {e}"


async def load_document_handler(input_data: LoadDocumentInput) -> str:
    file_path = input_data.file_path
    if not file_path or not file_path.strip():
        return "错误：文件路径不能为空"

    logger.info("tool_load_document", path=file_path)
    try:
        count = await get_ingestion_pipeline().ingest_file(file_path)
        return f"成功加载文件 {file_path}，共 {count} 个文档"
    except Exception as e:
        logger.error("tool_load_document_failed", path=file_path, error=str(e))
        return f"加载文档失败: {e}"


async def answer_question_handler(input_data: AnswerQuestionInput) -> str:
    question = input_data.question
    if not question or not question.strip():
        return "错误：问题不能为空"

    logger.info("tool_answer_question", question_preview=question[:100])
    try:
        answer = await get_orchestrator().answer(question)
        if not answer or not answer.strip():
            return "抱歉，无法生成回答"
        return answer
    except Exception as e:
        logger.error("tool_answer_question_failed", error=str(e))
        return f"回答问题失败: {e}"


def _summarize(text: str) -> str:
    if len(text) > SUMMARY_CHARS:
        return text[:SUMMARY_CHARS] + "..."
    return text


async def search_documents_handler(input_data: SearchDocumentsInput) -> str:
    query = input_data.query
    if not query or not query.strip():
        return "错误：查询文本不能为空"

    top_k = input_data.top_k if input_data.top_k and input_data.top_k > 0 else DEFAULT_SEARCH_TOP_K
    logger.info("tool_search_documents", query_preview=query[:100], top_k=top_k)

    try:
        documents = await get_orchestrator().search_documents(query, top_k)
    except Exception as e:
        logger.error("tool_search_documents_failed", error=str(e))
        return f"检索文档失败: {e}"

    if not documents:
        return f"未找到与 '{query}' 相关的文档"

    lines = [f"找到 {len(documents)} 个相关文档：", ""]
    for i, doc in enumerate(documents, 1):
        lines.append(f"文档 {i}:")
        lines.append(f"来源: {doc.source}")
        lines.append(f"内容摘要: {_summarize(doc.content)}")
        lines.append("")
    return "\n".join(lines)


load_all_documents_tool = Tool(
    name="loadAllDocuments",
    description="加载知识库中的所有文档到向量存储。返回加载的文档数量。",
    input_model=LoadAllDocumentsInput,
    handler=load_all_documents_handler,
)

load_document_tool = Tool(
    name="loadDocument",
    description="加载指定文件到向量存储。参数：filePath - 文件的完整路径。返回加载的文档数量。",
    input_model=LoadDocumentInput,
    handler=load_document_handler,
)

answer_question_tool = Tool(
    name="answerQuestion",
    description=(
        "基于知识库回答用户问题。使用RAG（检索增强生成）技术，"
        "从知识库中检索相关信息并生成回答。参数：question - 用户的问题。"
    ),
    input_model=AnswerQuestionInput,
    handler=answer_question_handler,
)

search_documents_tool = Tool(
    name="searchDocuments",
    description=(
        "从知识库中检索与查询相关的文档。参数：query - 查询文本；"
        "topK - 返回的文档数量（可选，默认4）。返回检索到的文档摘要。"
    ),
    input_model=SearchDocumentsInput,
    handler=search_documents_handler,
)

for _tool in (load_all_documents_tool, load_document_tool, answer_question_tool, search_documents_tool):
    register_tool(_tool)
