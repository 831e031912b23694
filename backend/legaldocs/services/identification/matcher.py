"""Requirement / article matcher.

Review note:
- 对 worker 来说匹配器是不透明的：给定需求、法律依据和条款，返回每条适用条款的分类。
- OpenAI 实现逐条分类，温度 0，JSON 输出；只对 429 做有限次指数退避重试。
- 没有配置 API Key 时退回 LinkAllMatcher：所有条款都按 Complementary 链接。
"""

from __future__ import annotations

from typing import List, Literal, Optional, Protocol, Sequence
import asyncio
import json
import logging

from httpx import Timeout
from openai import AsyncOpenAI, APIError, RateLimitError
from pydantic import BaseModel

from legaldocs.config import settings
from legaldocs.services.errors import JobFailure
from legaldocs.services.identification.snapshots import (
    ArticleSnapshot,
    LegalBasisSnapshot,
    RequirementSnapshot,
)

logger = logging.getLogger("uvicorn.error")

OBLIGATORY = "Obligatory"
COMPLEMENTARY = "Complementary"


class ArticleMatch(BaseModel):
    article_id: int
    classification: Literal["Obligatory", "Complementary"]


class RequirementMatcher(Protocol):
    async def match(
        self,
        requirement: RequirementSnapshot,
        legal_basis: LegalBasisSnapshot,
        articles: Sequence[ArticleSnapshot],
        intelligence_level: str,
    ) -> List[ArticleMatch]:
        ...


class LinkAllMatcher:
    """Deterministic matcher: every article is linked as complementary."""

    async def match(
        self,
        requirement: RequirementSnapshot,
        legal_basis: LegalBasisSnapshot,
        articles: Sequence[ArticleSnapshot],
        intelligence_level: str,
    ) -> List[ArticleMatch]:
        return [ArticleMatch(article_id=a.id, classification=COMPLEMENTARY) for a in articles]


def _build_messages(article: ArticleSnapshot, requirement: RequirementSnapshot) -> List[dict]:
    user_prompt = (
        'Analyze the following legal article and classify it as "Obligatory" or "Complementary" '
        "based on the requirement.\n\n"
        "**Article**:\n"
        f"- ID: {article.id}\n"
        f"- Title: {article.title}\n"
        f"- Description: {article.body}\n\n"
        "**Requirement**:\n"
        f"- ID: {requirement.id}\n"
        f"- Name: {requirement.requirement_name}\n"
        f"- Mandatory Description: {requirement.mandatory_description}\n"
        f"- Complementary Description: {requirement.complementary_description}\n"
        f"- Mandatory Keywords: {requirement.mandatory_keywords}\n"
        f"- Complementary Keywords: {requirement.complementary_keywords}\n\n"
        'Answer only with a JSON object: {"isObligatory": true|false, "isComplementary": true|false}. '
        "Both may be false when the article does not apply."
    )
    return [
        {
            "role": "system",
            "content": "You are a legal expert specializing in identifying obligatory and complementary legal requirements.",
        },
        {
            "role": "user",
            "content": user_prompt,
        },
    ]


def parse_classification(content: str) -> Optional[str]:
    """Map the model's JSON answer to a classification, or None when the article does not apply."""
    data = json.loads(content)
    if not isinstance(data, dict):
        raise ValueError("classification answer is not an object")
    if data.get("isObligatory") is True:
        return OBLIGATORY
    if data.get("isComplementary") is True:
        return COMPLEMENTARY
    return None


class OpenAIRequirementMatcher:
    def __init__(
        self,
        *,
        api_key: str,
        base_url: str = "",
        timeout_sec: float = 120,
        max_articles: int = 200,
        retries: int = 3,
        client: Optional[AsyncOpenAI] = None,
    ) -> None:
        if not api_key and client is None:
            raise RuntimeError("缺少 API Key，无法执行需求识别。")
        self.max_articles = max(1, int(max_articles))
        self.retries = max(0, int(retries))
        if client is None:
            client_kwargs = {
                "api_key": api_key,
                "timeout": Timeout(float(timeout_sec)),
            }
            if base_url:
                client_kwargs["base_url"] = base_url
            client = AsyncOpenAI(**client_kwargs)
        self.client = client

    async def _classify_article(
        self,
        article: ArticleSnapshot,
        requirement: RequirementSnapshot,
        model: str,
    ) -> Optional[str]:
        for attempt in range(self.retries + 1):
            try:
                resp = await self.client.chat.completions.create(
                    model=model,
                    messages=_build_messages(article, requirement),
                    temperature=0.0,
                    response_format={"type": "json_object"},
                )
            except RateLimitError as exc:
                if attempt >= self.retries:
                    raise JobFailure("Article Classification Error", errors={"reason": str(exc)}) from exc
                await asyncio.sleep(2 ** attempt)
                continue
            except APIError as exc:
                raise JobFailure("Article Classification Error", errors={"reason": str(exc)}) from exc

            content = (resp.choices[0].message.content or "").strip()
            try:
                return parse_classification(content)
            except ValueError as exc:
                # 单条条款的回答无法解析时按不适用处理，不影响其它条款
                logger.warning(
                    "matcher-unparseable-answer requirement_id=%s article_id=%s error=%s",
                    requirement.id,
                    article.id,
                    exc,
                )
                return None
        return None

    async def match(
        self,
        requirement: RequirementSnapshot,
        legal_basis: LegalBasisSnapshot,
        articles: Sequence[ArticleSnapshot],
        intelligence_level: str,
    ) -> List[ArticleMatch]:
        model = settings.model_for_level(intelligence_level)
        candidates = list(articles)[: self.max_articles]
        if len(articles) > len(candidates):
            logger.warning(
                "matcher-articles-truncated legal_basis_id=%s total=%s kept=%s",
                legal_basis.id,
                len(articles),
                len(candidates),
            )
        matches: List[ArticleMatch] = []
        for article in candidates:
            classification = await self._classify_article(article, requirement, model)
            if classification:
                matches.append(ArticleMatch(article_id=article.id, classification=classification))
        return matches


def build_matcher() -> RequirementMatcher:
    if not settings.matcher_enabled:
        logger.info("matcher-fallback reason=no-api-key matcher=LinkAllMatcher")
        return LinkAllMatcher()
    return OpenAIRequirementMatcher(
        api_key=settings.OPENAI_API_KEY,
        base_url=settings.OPENAI_BASE_URL,
        timeout_sec=settings.MATCHER_TIMEOUT_SEC,
        max_articles=settings.MATCHER_MAX_ARTICLES,
    )
