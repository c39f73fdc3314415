"""
LLM服务 - 使用LiteLLM集成大语言模型
"""
import os
import json
from typing import List, Dict, Any, Optional
from litellm import acompletion
import litellm

from ..utils.logger import get_logger, log_llm_error
from .dto import ReportStructure, SECTION_TYPES, CHART_TYPES
from .errors import LLMServiceError

logger = get_logger(__name__)


# 报表结构的响应schema，约束模型只返回可解析的JSON
REPORT_STRUCTURE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "title": {"type": "string"},
        "sections": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "id": {"type": "string"},
                    "title": {"type": "string"},
                    "type": {"type": "string", "enum": list(SECTION_TYPES)},
                    "chart_type": {"type": "string", "enum": list(CHART_TYPES)},
                    "content": {"type": "string"},
                },
                "required": ["id", "title", "type"],
            },
        },
        "insights": {
            "type": "array",
            "items": {"type": "string"},
        },
    },
    "required": ["title", "sections", "insights"],
}

INSIGHTS_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "insights": {"type": "array", "items": {"type": "string"}},
    },
    "required": ["insights"],
}

SECTION_CONTENT_FALLBACK = "Content generation failed"


class LLMService:
    """LLM服务类 - 处理所有与大语言模型的交互"""

    def __init__(self, default_model: str = None, insights_model: str = None):
        """
        初始化LLM服务

        Args:
            default_model: 生成报表结构使用的模型
            insights_model: 生成洞察和章节内容使用的轻量模型
        """
        self.default_model = default_model or os.getenv(
            "REPORT_MODEL",
            "gemini/gemini-2.5-pro"
        )
        self.insights_model = insights_model or os.getenv(
            "INSIGHTS_MODEL",
            "gemini/gemini-2.5-flash"
        )

        litellm.set_verbose = os.getenv("LITELLM_VERBOSE", "False").lower() == "true"

        logger.info(f"LLM服务初始化完成，默认模型: {self.default_model}")

    async def _call_llm(
        self,
        messages: List[Dict[str, str]],
        model: str,
        temperature: float = 0.7,
        max_tokens: int = 4096,
        response_schema: Optional[Dict[str, Any]] = None,
        schema_name: str = "response",
    ) -> str:
        """
        调用LLM（单次调用，不重试）

        Args:
            messages: 消息列表
            model: 模型名称
            temperature: 温度参数
            max_tokens: 最大token数
            response_schema: JSON schema，提供时要求模型按schema返回JSON
            schema_name: schema名称

        Returns:
            LLM响应内容

        Raises:
            LLMServiceError: 模型返回空内容
        """
        kwargs = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }

        if response_schema:
            kwargs["response_format"] = {
                "type": "json_schema",
                "json_schema": {"name": schema_name, "schema": response_schema},
            }

        logger.info(
            f"LLM请求详情: 模型={model}, 温度={temperature}, "
            f"最大tokens={max_tokens}, 消息数={len(messages)}, schema={schema_name if response_schema else None}"
        )
        for i, msg in enumerate(messages):
            logger.debug(f"  消息 {i+1} [{msg.get('role', 'unknown')}]:\n{msg.get('content', '')}")

        response = await acompletion(**kwargs)

        content = response.choices[0].message.content

        logger.debug(f"LLM响应:\n{'='*60}\n{content}\n{'='*60}")

        usage = getattr(response, "usage", None)
        if usage is not None:
            logger.info(
                f"Token使用: prompt={usage.prompt_tokens}, "
                f"completion={usage.completion_tokens}, "
                f"total={usage.total_tokens}"
            )

        if not content:
            raise LLMServiceError("Empty response from AI model")

        return content

    async def generate_report_structure(
        self,
        prompt: str,
        data_source_type: str = "general",
        model: str = None,
    ) -> ReportStructure:
        """
        根据用户需求和数据源类型生成报表结构

        只调用一次模型；空响应、非法JSON或不满足章节约束时整体失败，
        不返回部分结果。

        Args:
            prompt: 用户的自然语言需求
            data_source_type: 数据源类型标签（如 shopify, google_analytics）
            model: 使用的模型（可选）

        Returns:
            ReportStructure对象

        Raises:
            LLMServiceError: 生成失败
        """
        model = model or self.default_model

        logger.info(f"生成报表结构: prompt='{prompt[:50]}...', data_source={data_source_type}, model={model}")

        messages = [
            {"role": "system", "content": self._build_report_structure_prompt(prompt, data_source_type)},
            {"role": "user", "content": prompt},
        ]

        try:
            response = await self._call_llm(
                messages=messages,
                model=model,
                response_schema=REPORT_STRUCTURE_SCHEMA,
                schema_name="report_structure",
            )
            structure = ReportStructure.model_validate(json.loads(response))
        except Exception as e:
            log_llm_error(logger, model, prompt, e)
            raise LLMServiceError(f"AI report generation failed: {e}") from e

        logger.info(
            f"报表结构生成成功: title='{structure.title}', "
            f"{len(structure.sections)} 个章节, {len(structure.insights)} 条洞察"
        )
        return structure

    def _build_report_structure_prompt(self, prompt: str, data_source_type: str) -> str:
        """构建报表结构生成的系统提示"""
        return f"""You are an AI report generator expert.
Based on the user's request and data source type, generate a comprehensive report structure.
Consider the data source capabilities and create relevant sections with appropriate chart types.

Data source: {data_source_type}
User request: {prompt}

Respond with JSON in this exact format:
{{
  "title": "Report Title",
  "sections": [
    {{
      "id": "unique-id",
      "title": "Section Title",
      "type": "chart|text|table",
      "chart_type": "bar|line|pie|area",
      "content": "Text content for text sections"
    }}
  ],
  "insights": ["Key insight 1", "Key insight 2"]
}}

Only chart sections carry a chart_type."""

    async def generate_report_insights(
        self,
        data: Any,
        report_type: str,
        model: str = None,
    ) -> List[str]:
        """
        分析数据并给出3-5条业务洞察

        任何失败都返回空列表
        """
        model = model or self.insights_model
        prompt = (
            f"Analyze this {report_type} data and provide 3-5 key business insights:\n\n"
            f"Data: {json.dumps(data, indent=2, ensure_ascii=False, default=str)}\n\n"
            f"Provide insights as a JSON object with an \"insights\" array of strings."
        )

        try:
            response = await self._call_llm(
                messages=[{"role": "user", "content": prompt}],
                model=model,
                temperature=0.5,
                response_schema=INSIGHTS_SCHEMA,
                schema_name="insights",
            )
            result = json.loads(response)
            insights = result.get("insights", []) if isinstance(result, dict) else result
            return [str(item) for item in insights]
        except Exception as e:
            logger.warning(f"生成洞察失败: {e}", exc_info=True)
            return []

    async def generate_section_content(
        self,
        section: Dict[str, Any],
        data: Any = None,
        model: str = None,
    ) -> str:
        """
        为单个章节生成正文

        Args:
            section: 章节字典（至少包含 title 和 type）
            data: 可选的数据，供模型引用
            model: 使用的模型（可选）

        Returns:
            生成的文本；失败时返回固定的兜底文本
        """
        model = model or self.insights_model
        prompt = f'Generate content for a report section titled "{section.get("title")}" of type "{section.get("type")}".'

        if data:
            prompt += f"\n\nUse this data: {json.dumps(data, indent=2, ensure_ascii=False, default=str)}"

        if section.get("type") == "text":
            prompt += "\n\nGenerate 2-3 paragraphs of analytical text content."

        try:
            return await self._call_llm(
                messages=[{"role": "user", "content": prompt}],
                model=model,
            )
        except Exception as e:
            logger.warning(f"生成章节内容失败: section={section.get('id')}, error={e}", exc_info=True)
            return SECTION_CONTENT_FALLBACK
