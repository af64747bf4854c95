"""
ArticleService tests against the in-memory fake storages.

These cover the aggregation rules (tag resolution, partial updates,
favorite counting, empty-profile fallback, not-found short-circuits)
without any database, so every storage call an operation issues can be
asserted on directly.
"""
from datetime import datetime, timedelta, timezone

import pytest

from conduit.schemas import ArticlePosted, ArticleRequest, ArticleUpdated
from conduit.serialization import iso8601
from conduit.services.article_service import ArticleService, slugify


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def test_slugify_lowercases_and_hyphenates_whitespace():
    assert slugify("How To Train Your Dragon") == "how-to-train-your-dragon"
    assert slugify("Tabs\tand  spaces") == "tabs-and--spaces"
    assert slugify("already-slugged") == "already-slugged"


def test_iso8601_formats_naive_as_utc():
    assert iso8601(datetime(2024, 3, 5, 7, 8, 9, 123456)) == "2024-03-05T07:08:09.123Z"


def test_iso8601_converts_aware_to_utc():
    cet = timezone(timedelta(hours=1))
    assert iso8601(datetime(2024, 3, 5, 8, 0, 0, tzinfo=cet)) == "2024-03-05T07:00:00.000Z"


# ---------------------------------------------------------------------------
# create_tags
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_create_tags_inserts_only_new_names(service: ArticleService, article_storage):
    article_storage.add_tag("dragons")

    tags = await service.create_tags(["dragons", "training"])

    assert article_storage.inserted_tag_names == ["training"]
    assert {t.name for t in tags} == {"dragons", "training"}
    dragons = next(t for t in tags if t.name == "dragons")
    assert dragons.id == 1


@pytest.mark.asyncio
async def test_create_tags_is_idempotent_for_existing_names(service: ArticleService, article_storage):
    article_storage.add_tag("dragons")
    article_storage.add_tag("training")

    tags = await service.create_tags(["training", "dragons"])

    assert article_storage.inserted_tag_names == []
    assert "insert_and_get_tags" not in article_storage.calls
    assert len(tags) == 2


@pytest.mark.asyncio
async def test_create_tags_dedups_case_sensitively(service: ArticleService, article_storage):
    tags = await service.create_tags(["Python", "python", "python"])

    assert sorted(article_storage.inserted_tag_names) == ["Python", "python"]
    assert sorted(t.name for t in tags) == ["Python", "python"]


@pytest.mark.asyncio
async def test_create_tags_empty_input_skips_storage(service: ArticleService, article_storage):
    assert await service.create_tags([]) == []
    assert article_storage.calls == []


# ---------------------------------------------------------------------------
# create_article
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_create_article_assembles_detail(service: ArticleService, article_storage, user_storage):
    author = user_storage.add_user("hiccup", bio="Viking", image="http://img/h.png")
    article_storage.add_tag("dragons")

    result = await service.create_article(
        author.id,
        ArticlePosted(
            title="How To Train",
            description="A guide",
            body="Step one",
            tag_list=["training", "dragons"],
        ),
        current_user_id=author.id,
    )

    assert result is not None
    article = result.article
    assert article.slug == "how-to-train"
    assert article.title == "How To Train"
    assert article.description == "A guide"
    assert article.body == "Step one"
    assert article.tag_list == ["dragons", "training"]
    assert article.favorited is False
    assert article.favorites_count == 0
    assert article.author.username == "hiccup"
    assert article.author.bio == "Viking"
    assert article.author.image == "http://img/h.png"
    assert article.author.following is False
    assert article.created_at.endswith("Z")
    assert article_storage.inserted_tag_names == ["training"]
    assert len(article_storage.article_tags) == 2


@pytest.mark.asyncio
async def test_create_article_without_identity_returns_none(
    service: ArticleService, article_storage, user_storage
):
    author = user_storage.add_user("astrid")
    article_storage.assign_article_ids = False

    result = await service.create_article(
        author.id, ArticlePosted(title="Lost", body="gone", tag_list=["x"]), None
    )

    assert result is None
    assert article_storage.calls == ["create_article"]


@pytest.mark.asyncio
async def test_create_article_for_unknown_author_returns_none(service: ArticleService):
    result = await service.create_article(404, ArticlePosted(title="Orphan", body="b"), None)
    assert result is None


@pytest.mark.asyncio
async def test_create_article_anonymous_viewer_skips_favorite_lookup(
    service: ArticleService, article_storage, user_storage
):
    author = user_storage.add_user("fishlegs")

    result = await service.create_article(author.id, ArticlePosted(title="Gronckles", body="b"))

    assert result.article.favorited is False
    assert "is_favorite_article_ids" not in article_storage.calls


# ---------------------------------------------------------------------------
# get_article_by_slug
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_get_article_by_slug_missing_is_absent(service: ArticleService, article_storage, user_storage):
    assert await service.get_article_by_slug("no-such-article", 1) is None
    assert article_storage.calls == ["get_article_by_slug"]
    assert user_storage.calls == []


@pytest.mark.asyncio
async def test_get_article_by_slug_reports_favorite_state(
    service: ArticleService, article_storage, user_storage
):
    author = user_storage.add_user("stoick")
    reader = user_storage.add_user("gobber")
    first = article_storage.add_article(author, "Berk Chronicles", tags=["history"])
    second = article_storage.add_article(author, "Dragon Manual")
    article_storage.add_favorite(reader.id, first.id)
    article_storage.add_favorite(author.id, second.id)

    result = await service.get_article_by_slug("berk-chronicles", reader.id)

    assert result is not None
    assert result.article.favorited is True
    # Favorites across all of the author's articles.
    assert result.article.favorites_count == 2
    assert result.article.tag_list == ["history"]
    assert result.article.author.username == "stoick"

    other_view = await service.get_article_by_slug("berk-chronicles", author.id)
    assert other_view.article.favorited is False


@pytest.mark.asyncio
async def test_get_article_by_slug_missing_author_gets_empty_profile(
    service: ArticleService, article_storage, user_storage
):
    ghost = user_storage.add_user("ghost")
    article_storage.add_article(ghost, "Haunted")
    del user_storage.users[ghost.id]

    result = await service.get_article_by_slug("haunted", None)

    assert result.article.author.username == ""
    assert result.article.author.bio is None
    assert result.article.author.image is None
    assert result.article.author.following is False


# ---------------------------------------------------------------------------
# update_article_by_slug
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_update_keeps_absent_fields(service: ArticleService, article_storage, user_storage):
    author = user_storage.add_user("ruffnut")
    original = article_storage.add_article(author, "Twin Tales")

    result = await service.update_article_by_slug(
        "twin-tales", author.id, ArticleUpdated(body="Rewritten body")
    )

    assert result.article.body == "Rewritten body"
    assert result.article.title == "Twin Tales"
    assert result.article.description == "About Twin Tales"
    assert result.article.slug == "twin-tales"
    assert original.body == "Rewritten body"


@pytest.mark.asyncio
async def test_update_title_recomputes_slug(service: ArticleService, article_storage, user_storage):
    author = user_storage.add_user("tuffnut")
    article_storage.add_article(author, "Old Title")

    result = await service.update_article_by_slug(
        "old-title", author.id, ArticleUpdated(title="Brand New Title", description="Fresh")
    )

    assert result.article.title == "Brand New Title"
    assert result.article.slug == "brand-new-title"
    assert result.article.description == "Fresh"
    assert await service.get_article_by_slug("old-title", None) is None


@pytest.mark.asyncio
async def test_update_recomputes_slug_even_when_title_unchanged(
    service: ArticleService, article_storage, user_storage
):
    author = user_storage.add_user("snotlout")
    article_storage.add_article(author, "Hookfang Rules", slug="custom-slug")

    result = await service.update_article_by_slug(
        "custom-slug", author.id, ArticleUpdated(description="Still rules")
    )

    assert result.article.slug == "hookfang-rules"


@pytest.mark.asyncio
async def test_update_missing_article_writes_nothing(service: ArticleService, article_storage):
    result = await service.update_article_by_slug("missing", 1, ArticleUpdated(title="X"))

    assert result is None
    assert "update_article" not in article_storage.calls


@pytest.mark.asyncio
async def test_update_refreshes_updated_at(service: ArticleService, article_storage, user_storage):
    author = user_storage.add_user("valka")
    article = article_storage.add_article(author, "Cloudjumper")

    result = await service.update_article_by_slug("cloudjumper", None, ArticleUpdated(body="b"))

    assert result.article.created_at == iso8601(article.created_at)
    assert result.article.updated_at != result.article.created_at


# ---------------------------------------------------------------------------
# delete_article_by_slug
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_delete_removes_article_links_and_favorites(
    service: ArticleService, article_storage, user_storage
):
    author = user_storage.add_user("eret")
    article = article_storage.add_article(author, "Trapper", tags=["ships"])
    article_storage.add_favorite(author.id, article.id)

    assert await service.delete_article_by_slug("trapper") is None

    assert article_storage.articles == {}
    assert article_storage.article_tags == []
    assert article_storage.favorites == []


# ---------------------------------------------------------------------------
# Favorites
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_favorite_reports_pre_insert_count_plus_one(
    service: ArticleService, article_storage, user_storage
):
    author = user_storage.add_user("toothless")
    for name in ("a", "b", "c", "d"):
        user_storage.add_user(name)
    article = article_storage.add_article(author, "How To Train", slug="how-to-train")
    for user_id in (2, 3, 4):
        article_storage.add_favorite(user_id, article.id)

    result = await service.favorite_article(5, "how-to-train")

    assert result.article.favorited is True
    assert result.article.favorites_count == 4
    assert await article_storage.is_favorite_article_ids(5, [article.id]) == [article.id]
    # The count is read before the insert, never after.
    assert article_storage.calls.index("count_favorite") < article_storage.calls.index(
        "favorite_article"
    )


@pytest.mark.asyncio
async def test_favorite_missing_article_inserts_nothing(service: ArticleService, article_storage):
    assert await service.favorite_article(5, "missing") is None
    assert article_storage.favorites == []
    assert "favorite_article" not in article_storage.calls


@pytest.mark.asyncio
async def test_unfavorite_always_reports_zero(service: ArticleService, article_storage, user_storage):
    author = user_storage.add_user("meatlug")
    article = article_storage.add_article(author, "Rock Eating")
    article_storage.add_favorite(2, article.id)
    article_storage.add_favorite(3, article.id)

    result = await service.unfavorite_article(2, "rock-eating")

    assert result.article.favorited is False
    assert result.article.favorites_count == 0
    assert [f.user_id for f in article_storage.favorites] == [3]


@pytest.mark.asyncio
async def test_favorite_then_unfavorite_leaves_no_row(
    service: ArticleService, article_storage, user_storage
):
    author = user_storage.add_user("skullcrusher")
    article = article_storage.add_article(author, "Rumblehorn")

    await service.favorite_article(7, "rumblehorn")
    await service.unfavorite_article(7, "rumblehorn")

    assert await article_storage.is_favorite_article_ids(7, [article.id]) == []


@pytest.mark.asyncio
async def test_unfavorite_missing_article_is_absent(service: ArticleService):
    assert await service.unfavorite_article(1, "missing") is None


# ---------------------------------------------------------------------------
# get_articles
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_get_articles_never_populates_favorites(
    service: ArticleService, article_storage, user_storage
):
    author = user_storage.add_user("drago")
    article = article_storage.add_article(author, "Bewilderbeast", tags=["alpha"])
    article_storage.add_favorite(author.id, article.id)

    result = await service.get_articles(ArticleRequest())

    assert result.articles_count == 1
    item = result.articles[0]
    assert item.favorited is False
    assert item.favorites_count == 0
    assert item.tag_list == ["alpha"]
    assert item.author.username == "drago"


@pytest.mark.asyncio
async def test_get_articles_missing_author_keeps_row(
    service: ArticleService, article_storage, user_storage
):
    present = user_storage.add_user("present")
    gone = user_storage.add_user("gone")
    article_storage.add_article(present, "Here", minutes=1)
    article_storage.add_article(gone, "Not Here", minutes=2)
    del user_storage.users[gone.id]

    result = await service.get_articles(ArticleRequest())

    assert [a.title for a in result.articles] == ["Not Here", "Here"]
    assert result.articles[0].author.username == ""
    assert result.articles[1].author.username == "present"


@pytest.mark.asyncio
async def test_get_articles_filters_and_paginates(
    service: ArticleService, article_storage, user_storage
):
    author = user_storage.add_user("alvin")
    reader = user_storage.add_user("dagur")
    for i in range(5):
        article_storage.add_article(author, f"Post {i}", tags=["odd" if i % 2 else "even"], minutes=i)
    article_storage.add_favorite(reader.id, 2)

    by_tag = await service.get_articles(ArticleRequest(tag="even"))
    assert [a.title for a in by_tag.articles] == ["Post 4", "Post 2", "Post 0"]

    page = await service.get_articles(ArticleRequest(author="alvin", limit=2, offset=1))
    assert [a.title for a in page.articles] == ["Post 3", "Post 2"]
    assert page.articles_count == 2

    favorited = await service.get_articles(ArticleRequest(favorited="dagur"))
    assert [a.title for a in favorited.articles] == ["Post 1"]

    assert (await service.get_articles(ArticleRequest(author="nobody"))).articles == []


# ---------------------------------------------------------------------------
# get_feeds
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_get_feeds_joins_favorites_and_author_counts(
    service: ArticleService, article_storage, user_storage
):
    reader = user_storage.add_user("reader")
    followed = user_storage.add_user("followed")
    quiet = user_storage.add_user("quiet")
    stranger = user_storage.add_user("stranger")
    user_storage.follows.update({(reader.id, followed.id), (reader.id, quiet.id)})

    loud = article_storage.add_article(followed, "Loud", minutes=3)
    other = article_storage.add_article(followed, "Other", minutes=2)
    article_storage.add_article(quiet, "Quiet", minutes=1)
    article_storage.add_article(stranger, "Unfollowed", minutes=4)
    article_storage.add_favorite(reader.id, loud.id)
    article_storage.add_favorite(stranger.id, other.id)

    result = await service.get_feeds(reader.id, 10, 0)

    assert [a.title for a in result.articles] == ["Loud", "Other", "Quiet"]
    assert result.articles_count == 3
    by_title = {a.title: a for a in result.articles}
    assert by_title["Loud"].favorited is True
    assert by_title["Other"].favorited is False
    assert by_title["Loud"].favorites_count == 2
    assert by_title["Other"].favorites_count == 2
    assert by_title["Quiet"].favorites_count == 0
    assert by_title["Quiet"].author.username == "quiet"


@pytest.mark.asyncio
async def test_get_feeds_defaults_pagination(service: ArticleService, article_storage, user_storage):
    reader = user_storage.add_user("reader")
    writer = user_storage.add_user("writer")
    user_storage.follows.add((reader.id, writer.id))
    for i in range(25):
        article_storage.add_article(writer, f"Entry {i}", minutes=i)

    result = await service.get_feeds(reader.id)

    assert result.articles_count == 20
    assert result.articles[0].title == "Entry 24"


# ---------------------------------------------------------------------------
# Failure propagation
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_storage_failure_aborts_the_composition(article_storage, user_storage):
    class BrokenCounts(type(article_storage)):
        async def count_favorite(self, author_id: int) -> int:
            raise RuntimeError("database went away")

    broken = BrokenCounts(user_storage)
    author = user_storage.add_user("heather")
    broken.add_article(author, "Razorwhip")
    service = ArticleService(broken, user_storage)

    with pytest.raises(RuntimeError, match="database went away"):
        await service.get_article_by_slug("razorwhip", author.id)
    assert "get_user" not in user_storage.calls


@pytest.mark.asyncio
async def test_get_tags_lists_all_names(service: ArticleService, article_storage):
    article_storage.add_tag("zeta")
    article_storage.add_tag("alpha")
    assert await service.get_tags() == ["alpha", "zeta"]
