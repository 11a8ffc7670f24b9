from types import SimpleNamespace

import pytest
from sqlalchemy.dialects import postgresql

from tests.fakes import (
    BASE_VECTOR,
    FakeConfirmation,
    FakeEmbeddings,
    StaticIndex,
    long_text,
    vector_with_similarity,
)
from trustgate.core.errors import UpstreamUnavailable
from trustgate.models.content import CONTENT_STATUS_FLAGGED
from trustgate.services.originality import (
    ConfirmationVerdict,
    OriginalityChecker,
    SimilarityMatch,
    SqlSimilarityIndex,
    cosine_similarity,
)

TEXT = long_text("An essay about river ecology")


def test_cosine_similarity():
    assert cosine_similarity([1.0, 0.0], [1.0, 0.0]) == pytest.approx(1.0)
    assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)
    assert cosine_similarity([1.0, 0.0], [1.0]) == 0.0
    assert cosine_similarity([0.0, 0.0], [1.0, 0.0]) == 0.0


@pytest.mark.asyncio
async def test_short_text_skips_the_check():
    embeddings = FakeEmbeddings()
    checker = OriginalityChecker(embeddings)

    result = await checker.check("too short", StaticIndex())

    assert result.is_plagiarized is False
    assert result.details == "Content too short for plagiarism check"
    assert embeddings.calls == []


@pytest.mark.asyncio
async def test_embedding_failure_fails_open():
    checker = OriginalityChecker(FakeEmbeddings(unavailable="embedding API key not configured"))

    result = await checker.check(TEXT, StaticIndex())

    assert result.is_plagiarized is False
    assert result.similarity_score == 0.0
    assert result.details == "unavailable"
    assert result.available is False


@pytest.mark.asyncio
async def test_no_similar_content():
    checker = OriginalityChecker(FakeEmbeddings())

    result = await checker.check(TEXT, StaticIndex(), title="Rivers")

    assert result.details == "No similar content found"
    assert result.available is True
    assert result.embedding == [0.0, 1.0]
    assert result.embedded_text.startswith("Rivers\n\n")


@pytest.mark.asyncio
async def test_confirmation_verdict_decides_high_similarity():
    confirmation = FakeConfirmation(
        ConfirmationVerdict(is_plagiarized=False, reason="Properly attributed quotation")
    )
    checker = OriginalityChecker(FakeEmbeddings(), confirmation)
    index = StaticIndex([SimilarityMatch(content_id=7, similarity=0.95, embedded_text="orig")])

    result = await checker.check(TEXT, index)

    assert result.is_plagiarized is False
    assert result.similarity_score == pytest.approx(0.95)
    assert result.sources == [7]
    assert result.details == "Properly attributed quotation"
    assert confirmation.calls[0][0] == "orig"


@pytest.mark.asyncio
async def test_definite_threshold_applies_without_confirmation():
    checker = OriginalityChecker(FakeEmbeddings(), FakeConfirmation(unavailable="down"))
    index = StaticIndex(
        [
            SimilarityMatch(content_id=3, similarity=0.91, embedded_text="a"),
            SimilarityMatch(content_id=4, similarity=0.75, embedded_text="b"),
        ]
    )

    result = await checker.check(TEXT, index)

    assert result.is_plagiarized is True
    assert result.sources == [3, 4]
    assert result.details == "91% similar to existing published content"


@pytest.mark.asyncio
async def test_moderate_similarity_is_not_plagiarism():
    confirmation = FakeConfirmation(ConfirmationVerdict(is_plagiarized=True))
    checker = OriginalityChecker(FakeEmbeddings(), confirmation)
    index = StaticIndex([SimilarityMatch(content_id=3, similarity=0.84, embedded_text="a")])

    result = await checker.check(TEXT, index)

    assert result.is_plagiarized is False
    assert result.similarity_score == pytest.approx(0.84)
    # Below the escalation threshold the confirmation model is never asked.
    assert confirmation.calls == []


@pytest.mark.asyncio
async def test_index_failure_fails_open_but_keeps_embedding(mocker):
    index = StaticIndex()
    mocker.patch.object(index, "search", side_effect=UpstreamUnavailable("index down"))
    checker = OriginalityChecker(FakeEmbeddings())

    result = await checker.check(TEXT, index)

    assert result.details == "unavailable"
    assert result.unavailable_reason == "index down"
    assert result.embedding == [0.0, 1.0]


def test_sql_index_searches_only_published_content(
    db_session, author, publish_content, flag_content
):
    published = publish_content(author, "Published body", BASE_VECTOR)
    close = publish_content(author, "Close body", vector_with_similarity(0.8))
    flagged = flag_content(author)
    SqlSimilarityIndex(db_session).store(
        flagged.id, flagged.current_version_id, BASE_VECTOR, "flagged text", "fake-embedding"
    )
    db_session.commit()
    assert flagged.status == CONTENT_STATUS_FLAGGED

    matches = SqlSimilarityIndex(db_session).search(BASE_VECTOR, threshold=0.7, limit=3)

    assert [match.content_id for match in matches] == [published.id, close.id]
    assert matches[0].similarity == pytest.approx(1.0)
    assert matches[0].embedded_text == "Published body"


def test_sql_index_excludes_the_item_itself(db_session, author, publish_content):
    item = publish_content(author, "Body", BASE_VECTOR)

    index = SqlSimilarityIndex(db_session)

    assert index.search(BASE_VECTOR, threshold=0.5, limit=3, exclude_content_id=item.id) == []
    assert len(index.search(BASE_VECTOR, threshold=0.5, limit=3)) == 1


def test_postgres_ranks_by_cosine_distance_in_sql(db_session):
    query = SqlSimilarityIndex(db_session).nearest_query(
        BASE_VECTOR, threshold=0.7, limit=3, exclude_content_id=5
    )

    sql = str(query.statement.compile(dialect=postgresql.dialect()))

    assert "<=>" in sql
    assert "ORDER BY" in sql
    assert "LIMIT" in sql
    assert "content_item.status" in sql


def test_postgres_search_uses_database_ranking(db_session, mocker):
    postgres = SimpleNamespace(dialect=SimpleNamespace(name="postgresql"))
    mocker.patch.object(db_session, "get_bind", return_value=postgres)
    nearest = mocker.patch.object(SqlSimilarityIndex, "nearest_query")
    nearest.return_value.all.return_value = [(7, "matched text", 0.93)]

    matches = SqlSimilarityIndex(db_session).search(BASE_VECTOR, threshold=0.7, limit=3)

    assert matches == [SimilarityMatch(content_id=7, similarity=0.93, embedded_text="matched text")]
    nearest.assert_called_once_with(
        BASE_VECTOR, threshold=0.7, limit=3, exclude_content_id=None
    )
