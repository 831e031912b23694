"""Tests for the requirement/article matchers."""

from types import SimpleNamespace

import httpx
import pytest
from openai import APIConnectionError, RateLimitError

from legaldocs.services.errors import JobFailure
from legaldocs.services.identification.matcher import (
    LinkAllMatcher,
    OpenAIRequirementMatcher,
    build_matcher,
    parse_classification,
)
from legaldocs.services.identification.snapshots import (
    ArticleSnapshot,
    LegalBasisSnapshot,
    RequirementSnapshot,
    TaxonomySnapshot,
)

SUBJECT = TaxonomySnapshot(id=1, name="Ambiental", abbreviation="AMB")
REQUIREMENT = RequirementSnapshot(
    id=3,
    requirement_number="12",
    requirement_name="Registro de generador",
    mandatory_description="Registrarse como generador.",
    subject=SUBJECT,
)
LEGAL_BASIS = LegalBasisSnapshot(id=5, legal_name="Ley General", jurisdiction="Federal", subject=SUBJECT)
ARTICLES = [
    ArticleSnapshot(id=10, title="1 Objeto", body="1 Objeto\nTexto", order=1),
    ArticleSnapshot(id=11, title="2 Registro", body="2 Registro\nTexto", order=2),
    ArticleSnapshot(id=12, title="ANEXO 1", body="ANEXO 1\nTexto", order=3),
]


class FakeCompletions:
    """Stands in for `client.chat.completions`."""

    def __init__(self, answers):
        self.answers = list(answers)
        self.requests = []

    async def create(self, **kwargs):
        self.requests.append(kwargs)
        answer = self.answers.pop(0)
        if isinstance(answer, Exception):
            raise answer
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=answer))])


def fake_client(answers):
    completions = FakeCompletions(answers)
    return SimpleNamespace(chat=SimpleNamespace(completions=completions)), completions


class TestParseClassification:
    @pytest.mark.parametrize(
        "content,expected",
        [
            ('{"isObligatory": true, "isComplementary": false}', "Obligatory"),
            ('{"isObligatory": true, "isComplementary": true}', "Obligatory"),
            ('{"isObligatory": false, "isComplementary": true}', "Complementary"),
            ('{"isObligatory": false, "isComplementary": false}', None),
            ("{}", None),
        ],
    )
    def test_answers(self, content, expected):
        assert parse_classification(content) == expected

    @pytest.mark.parametrize("content", ["not json", "[true]"])
    def test_malformed(self, content):
        with pytest.raises(ValueError):
            parse_classification(content)


class TestLinkAllMatcher:
    @pytest.mark.asyncio
    async def test_links_every_article(self):
        matches = await LinkAllMatcher().match(REQUIREMENT, LEGAL_BASIS, ARTICLES, "Low")
        assert [(m.article_id, m.classification) for m in matches] == [
            (10, "Complementary"),
            (11, "Complementary"),
            (12, "Complementary"),
        ]

    def test_is_the_default_without_api_key(self):
        assert isinstance(build_matcher(), LinkAllMatcher)


class TestOpenAIRequirementMatcher:
    """Tests against a stubbed chat completions client."""

    @pytest.mark.asyncio
    async def test_classifies_each_article(self):
        client, completions = fake_client(
            [
                '{"isObligatory": true, "isComplementary": false}',
                '{"isObligatory": false, "isComplementary": false}',
                '{"isObligatory": false, "isComplementary": true}',
            ]
        )
        matcher = OpenAIRequirementMatcher(api_key="", client=client)
        matches = await matcher.match(REQUIREMENT, LEGAL_BASIS, ARTICLES, "High")

        assert [(m.article_id, m.classification) for m in matches] == [(10, "Obligatory"), (12, "Complementary")]
        assert len(completions.requests) == 3
        first = completions.requests[0]
        assert first["temperature"] == 0.0
        assert first["response_format"] == {"type": "json_object"}
        assert "2 Registro" in completions.requests[1]["messages"][1]["content"]

    @pytest.mark.asyncio
    async def test_unparseable_answer_skips_article(self):
        client, _ = fake_client(["no es json", '{"isObligatory": true}', '{"isComplementary": true}'])
        matcher = OpenAIRequirementMatcher(api_key="", client=client)
        matches = await matcher.match(REQUIREMENT, LEGAL_BASIS, ARTICLES, "Low")
        assert [m.article_id for m in matches] == [11, 12]

    @pytest.mark.asyncio
    async def test_articles_are_capped(self):
        client, completions = fake_client(['{"isComplementary": true}'] * 2)
        matcher = OpenAIRequirementMatcher(api_key="", client=client, max_articles=2)
        matches = await matcher.match(REQUIREMENT, LEGAL_BASIS, ARTICLES, "Low")
        assert [m.article_id for m in matches] == [10, 11]
        assert len(completions.requests) == 2

    @pytest.mark.asyncio
    async def test_api_error_fails_the_job(self):
        request = httpx.Request("POST", "https://api.example.test/v1/chat/completions")
        client, _ = fake_client([APIConnectionError(request=request)])
        matcher = OpenAIRequirementMatcher(api_key="", client=client)
        with pytest.raises(JobFailure) as exc_info:
            await matcher.match(REQUIREMENT, LEGAL_BASIS, ARTICLES, "Low")
        assert exc_info.value.message == "Article Classification Error"

    @pytest.mark.asyncio
    async def test_rate_limit_without_retries_left(self):
        request = httpx.Request("POST", "https://api.example.test/v1/chat/completions")
        response = httpx.Response(429, request=request)
        client, completions = fake_client([RateLimitError("slow down", response=response, body=None)])
        matcher = OpenAIRequirementMatcher(api_key="", client=client, retries=0)
        with pytest.raises(JobFailure):
            await matcher.match(REQUIREMENT, LEGAL_BASIS, ARTICLES, "Low")
        assert len(completions.requests) == 1

    def test_requires_api_key_or_client(self):
        with pytest.raises(RuntimeError):
            OpenAIRequirementMatcher(api_key="")
