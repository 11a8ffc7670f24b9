import pytest

from tests.fakes import FakeBackend
from trustgate.core.errors import UpstreamUnavailable
from trustgate.services.availability import Available, Unavailable
from trustgate.services.classification import (
    ClassificationGateway,
    ClassificationResult,
    OpenAIModerationBackend,
    PerspectiveBackend,
    format_category,
    moderation_warning,
)


@pytest.fixture
def perspective_client(mocker):
    client = mocker.MagicMock()
    client.enabled = True
    client.analyze = mocker.AsyncMock()
    return client


@pytest.fixture
def openai_client(mocker):
    client = mocker.MagicMock()
    client.enabled = True
    client.moderate = mocker.AsyncMock()
    return client


@pytest.mark.asyncio
async def test_gateway_uses_primary_when_available():
    primary = FakeBackend("primary", flagged_categories=["hate"])
    secondary = FakeBackend("secondary")
    gateway = ClassificationGateway([primary, secondary])

    result = await gateway.classify("some text")

    assert isinstance(result, Available)
    assert result.value.backend == "primary"
    assert result.value.flagged is True
    assert secondary.calls == []


@pytest.mark.asyncio
async def test_gateway_falls_back_to_secondary():
    primary = FakeBackend("primary", unavailable="primary: 503")
    secondary = FakeBackend("secondary", flagged_categories=["violence"])
    gateway = ClassificationGateway([primary, secondary])

    result = await gateway.classify("some text")

    assert isinstance(result, Available)
    assert result.value.backend == "secondary"
    assert result.value.flagged_categories == ["violence"]
    assert primary.calls == ["some text"]


@pytest.mark.asyncio
async def test_gateway_reports_unavailable_when_every_backend_fails():
    gateway = ClassificationGateway(
        [FakeBackend("a", unavailable="a down"), FakeBackend("b", unavailable="b down")]
    )

    result = await gateway.classify("text")

    assert isinstance(result, Unavailable)
    assert "a down" in result.reason
    assert "b down" in result.reason


@pytest.mark.asyncio
async def test_gateway_without_backends_is_unavailable():
    result = await ClassificationGateway([]).classify("text")

    assert isinstance(result, Unavailable)
    assert result.reason == "no classification backend configured"


@pytest.mark.asyncio
async def test_perspective_scores_map_onto_categories(perspective_client):
    perspective_client.analyze.return_value = {
        "TOXICITY": 0.91,
        "SEVERE_TOXICITY": 0.4,
        "THREAT": 0.75,
        "IDENTITY_ATTACK": 0.7,
    }
    backend = PerspectiveBackend(client=perspective_client, threshold=0.7)

    result = await backend.classify("text")

    assert isinstance(result, Available)
    verdict = result.value
    assert verdict.backend == "perspective"
    assert verdict.flagged is True
    assert verdict.categories == {
        "harassment": True,
        "harassment/threatening": False,
        "violence": True,
        # Scores equal to the threshold do not flag.
        "hate": False,
    }
    assert verdict.scores["harassment"] == pytest.approx(0.91)
    assert verdict.details == ["Toxic language detected", "Threatening content detected"]


@pytest.mark.asyncio
async def test_perspective_errors_become_unavailable(perspective_client):
    perspective_client.analyze.side_effect = UpstreamUnavailable("perspective responded with 500")
    backend = PerspectiveBackend(client=perspective_client)

    result = await backend.classify("text")

    assert isinstance(result, Unavailable)
    assert "500" in result.reason


@pytest.mark.asyncio
async def test_unconfigured_backend_never_calls_upstream(openai_client):
    openai_client.enabled = False
    backend = OpenAIModerationBackend(client=openai_client)

    result = await backend.classify("text")

    assert isinstance(result, Unavailable)
    openai_client.moderate.assert_not_called()


@pytest.mark.asyncio
async def test_openai_result_is_normalized(openai_client):
    openai_client.moderate.return_value = {
        "flagged": True,
        "categories": {"harassment": True, "hate": False},
        "category_scores": {"harassment": 0.88, "hate": 0.02},
    }
    backend = OpenAIModerationBackend(client=openai_client)

    result = await backend.classify("text")

    assert isinstance(result, Available)
    assert result.value.flagged_categories == ["harassment"]
    assert result.value.scores == {"harassment": 0.88, "hate": 0.02}
    assert result.value.details == ["harassment"]


def test_format_category_splits_subcategories():
    assert format_category("harassment/threatening") == "Harassment / Threatening"
    assert format_category("hate") == "Hate"


def test_moderation_warning_lists_flagged_categories():
    result = ClassificationResult(
        flagged=True,
        categories={"hate": True, "violence": True, "sexual": False},
        scores={},
        backend="openai",
    )

    assert moderation_warning(result) == (
        "Your content was flagged for: Hate, Violence. Please review our community "
        "guidelines and ensure your content is respectful and appropriate."
    )


def test_moderation_warning_empty_for_clean_result():
    result = ClassificationResult(flagged=False, categories={}, scores={}, backend="openai")

    assert moderation_warning(result) == ""
