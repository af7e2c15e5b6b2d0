from unittest.mock import AsyncMock, call

import pytest

from tagforum.schemas.post import ReplyRef, SearchPage
from tagforum.services.community_posts import (
    get_parent_posts,
    has_hashtag,
    normalize_tag,
)
from tests.conftest import TEST_TAG, at, make_post


def _search(*pages: SearchPage) -> AsyncMock:
    return AsyncMock(side_effect=list(pages))


def _uris(result) -> list[str]:
    return [p.post.uri for p in result.posts]


@pytest.mark.asyncio
async def test_returns_only_parent_posts_with_the_tag():
    search = _search(SearchPage(posts=[
        make_post("post1", 0),
        make_post("post2", 86400, parent="post1"),
        make_post("post3", 2 * 86400, text="another parent without tag"),
    ]))

    result = await get_parent_posts(search, TEST_TAG)

    assert _uris(result) == ["post1"]
    # Bumped by the reply
    assert result.posts[0].latest_reply_at == at(86400)
    assert result.posts[0].post.indexed_at == at(0)


@pytest.mark.asyncio
async def test_sorts_by_most_recent_activity():
    search = _search(SearchPage(posts=[
        make_post("post1", 0),
        make_post("post2", 3 * 86400),
        make_post("post3", 86400, text="reply to old", parent="post1"),
    ]))

    result = await get_parent_posts(search, TEST_TAG)

    assert _uris(result) == ["post2", "post1"]


@pytest.mark.asyncio
async def test_respects_max_posts():
    posts = [make_post(f"post{i}", i) for i in range(30)]
    search = _search(SearchPage(posts=posts))

    result = await get_parent_posts(search, TEST_TAG, max_posts=10)

    assert len(result.posts) == 10
    assert result.posts[0].post.uri == "post29"
    search.assert_awaited_once_with("#test", 20, None)


@pytest.mark.asyncio
async def test_top_sort_uses_likes_then_freshness():
    posts = [
        make_post("post1", 0, like_count=100),
        make_post("post2", 2 * 86400, like_count=50),
        make_post("post3", 3 * 86400, like_count=100),
    ]

    top = await get_parent_posts(_search(SearchPage(posts=posts)), TEST_TAG, sort_order="top")
    recent = await get_parent_posts(_search(SearchPage(posts=posts)), TEST_TAG)

    assert _uris(top) == ["post3", "post1", "post2"]
    assert _uris(recent) == ["post3", "post2", "post1"]


@pytest.mark.asyncio
async def test_top_sort_treats_missing_likes_as_zero():
    search = _search(SearchPage(posts=[
        make_post("post1", 0, like_count=10),
        make_post("post2", 86400),
    ]))

    result = await get_parent_posts(search, TEST_TAG, sort_order="top")

    assert _uris(result) == ["post1", "post2"]


@pytest.mark.asyncio
async def test_fetches_until_enough_parent_posts_are_found():
    # Post 1 newest, post 100 oldest; 1-9 and 100 are roots, 10-99 reply to post 1.
    posts = []
    for number in range(1, 101):
        is_parent = number <= 9 or number == 100
        posts.append(make_post(
            f"at://did:plc:fake/app.bsky.feed.post/{number}",
            100 - number,
            text=f"Post {number} #test",
            parent=None if is_parent else "at://did:plc:fake/app.bsky.feed.post/1",
            like_count=10,
        ))
    search = _search(*[
        SearchPage(posts=posts[i * 20:(i + 1) * 20], cursor=f"cursor{i + 1}") for i in range(5)
    ])

    result = await get_parent_posts(search, TEST_TAG, max_posts=10)

    assert search.await_count == 5
    assert search.await_args_list[:2] == [call("#test", 20, None), call("#test", 20, "cursor1")]
    numbers = [int(p.post.uri.rsplit("/", 1)[-1]) for p in result.posts]
    assert numbers == [1, 2, 3, 4, 5, 6, 7, 8, 9, 100]
    assert result.cursor == "cursor5"


@pytest.mark.asyncio
async def test_stops_on_empty_page():
    search = _search(
        SearchPage(posts=[make_post("post1", 0)], cursor="c1"),
        SearchPage(posts=[], cursor="c2"),
    )

    result = await get_parent_posts(search, TEST_TAG, max_posts=5)

    assert search.await_count == 2
    assert _uris(result) == ["post1"]


@pytest.mark.asyncio
async def test_stops_when_cursor_is_exhausted():
    search = _search(SearchPage(posts=[make_post("post1", 0)], cursor=None))

    result = await get_parent_posts(search, TEST_TAG, max_posts=5)

    search.assert_awaited_once()
    assert result.cursor is None


@pytest.mark.asyncio
async def test_resumes_from_caller_cursor():
    search = _search(SearchPage(posts=[make_post("post1", 0)], cursor="next"))

    result = await get_parent_posts(search, TEST_TAG, cursor="resume-here", max_posts=1)

    search.assert_awaited_once_with("#test", 20, "resume-here")
    assert result.cursor == "next"


@pytest.mark.asyncio
async def test_deduplicates_overlapping_pages():
    search = _search(
        SearchPage(posts=[make_post("a", 1), make_post("b", 2)], cursor="c1"),
        SearchPage(posts=[make_post("b", 2), make_post("a", 1), make_post("c", 3)]),
    )

    result = await get_parent_posts(search, TEST_TAG, max_posts=10)

    assert _uris(result) == ["c", "b", "a"]


@pytest.mark.asyncio
async def test_repeated_runs_never_duplicate_uris():
    pages = [
        SearchPage(posts=[make_post("a", 1), make_post("a", 1), make_post("b", 2)], cursor="c1"),
        SearchPage(posts=[make_post("a", 1), make_post("r", 5, parent="a")]),
    ]
    for _ in range(2):
        result = await get_parent_posts(_search(*pages), TEST_TAG, max_posts=10)
        uris = _uris(result)
        assert len(uris) == len(set(uris))


@pytest.mark.asyncio
async def test_member_filter_restricts_authors_unless_include_all():
    posts = [
        make_post("member-post", 1, author="did:plc:member"),
        make_post("outsider-post", 2, author="did:plc:outsider"),
    ]
    members = {"did:plc:member"}

    filtered = await get_parent_posts(
        _search(SearchPage(posts=posts)), TEST_TAG, member_filter=members
    )
    everything = await get_parent_posts(
        _search(SearchPage(posts=posts)), TEST_TAG, member_filter=members, include_all=True
    )

    assert _uris(filtered) == ["member-post"]
    assert _uris(everything) == ["outsider-post", "member-post"]


@pytest.mark.asyncio
async def test_replies_without_the_tag_still_bump_their_root():
    search = _search(SearchPage(posts=[
        make_post("root", 0),
        make_post("reply", 50, text="no hashtag here", parent="root"),
    ]))

    result = await get_parent_posts(search, TEST_TAG)

    assert result.posts[0].latest_reply_at == at(50)


@pytest.mark.asyncio
async def test_older_replies_never_move_latest_reply_backwards():
    search = _search(SearchPage(posts=[
        make_post("root", 100),
        make_post("late", 300, parent="root"),
        make_post("early", 200, parent="root"),
    ]))

    result = await get_parent_posts(search, TEST_TAG)

    assert result.posts[0].latest_reply_at == at(300)
    assert result.posts[0].latest_reply_at >= result.posts[0].post.indexed_at


@pytest.mark.asyncio
async def test_malformed_reply_root_is_ignored():
    broken = make_post("broken", 10).model_copy(
        update={"reply_ref": ReplyRef(root_uri=None, parent_uri=None)}
    )
    search = _search(SearchPage(posts=[make_post("root", 0), broken]))

    result = await get_parent_posts(search, TEST_TAG)

    # Still a reply, so never a parent; and it bumps nothing.
    assert _uris(result) == ["root"]
    assert result.posts[0].latest_reply_at == at(0)


@pytest.mark.asyncio
async def test_tag_with_regex_characters_is_literal():
    search = _search(SearchPage(posts=[
        make_post("cpp", 1, text="learning #C++ today"),
        make_post("cxx", 2, text="learning #cxx today"),
    ]))

    result = await get_parent_posts(search, "#c++")

    assert _uris(result) == ["cpp"]
    search.assert_awaited_once_with("#c++", 20, None)


@pytest.mark.asyncio
async def test_invalid_arguments_fail_before_fetching():
    search = AsyncMock()

    with pytest.raises(ValueError):
        await get_parent_posts(search, TEST_TAG, max_posts=0)
    with pytest.raises(ValueError):
        await get_parent_posts(search, "#")
    search.assert_not_awaited()


def test_hashtag_match_is_a_plain_substring():
    assert has_hashtag("Hello #TEST world", "test")
    assert has_hashtag("#testing is fun", "test")
    assert not has_hashtag("test without hash", "test")


def test_normalize_tag_strips_one_hash():
    assert normalize_tag(" #python ") == "python"
    assert normalize_tag("python") == "python"
