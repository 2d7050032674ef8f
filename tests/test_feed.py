"""
Feed filter / search / sort / paginate tests.
"""
from datetime import datetime

import pytest

from glassblog.feed import (
    FeedState, embed_url, format_date, matches_kind, matches_search, paginate, snippet, view,
)
from data_builder import make_post, make_posts


def ids(posts):
    return [p.id for p in posts]


@pytest.fixture
def two_posts():
    return [
        make_post(1, kind='article', title='A', likes=2, date='2024-01-01T00:00:00'),
        make_post(2, kind='vlog', title='B', likes=5, date='2024-06-01T00:00:00'),
    ]


@pytest.fixture
def mixed():
    return [
        make_post(1, kind='article', title='Cats and dogs', author='Alice', tags=['pets'], likes=3, days_ago=5),
        make_post(2, kind='vlog', title='Trip', author='Bob', tags=['Category: travel'], likes=10, days_ago=1),
        make_post(3, kind='docs', title='Manual', author='Catherine', likes=0, days_ago=3),
        make_post(4, kind='article', title='Cooking', author='Dan', tags=['food'], likes=3, days_ago=2),
        make_post(5, kind='vlog', title='Music', author='Eve', likes=7, days_ago=4),
    ]


class TestFilter:
    """Kind filter and the popular mode."""

    def test_popular_orders_by_likes(self, two_posts):
        assert ids(view(two_posts, filter='popular')) == [2, 1]

    def test_kind_filter(self, two_posts):
        assert ids(view(two_posts, filter='article')) == [1]

    def test_popular_spans_all_kinds(self, mixed):
        """popular skips the kind filter entirely."""
        assert sorted(ids(view(mixed, filter='popular', page_size=10))) == [1, 2, 3, 4, 5]

    def test_all(self, mixed):
        assert len(view(mixed, filter='all', page_size=10)) == 5

    @pytest.mark.parametrize('kind', ['article', 'vlog', 'docs', 'all', 'popular'])
    @pytest.mark.parametrize('term', ['', 'cat', 'TRIP', 'o', 'zzz'])
    def test_exact_predicate(self, mixed, kind, term):
        """Nothing failing the predicate is shown, nothing passing it is hidden."""
        expected = {p.id for p in mixed if matches_kind(p, kind) and matches_search(p, term)}

        shown = view(mixed, filter=kind, search=term, page_size=100)

        assert {p.id for p in shown} == expected
        assert len(shown) == len(expected)


class TestSearch:
    """Case-insensitive substring over title, author and tags."""

    def test_tag_match(self, mixed):
        """'cat' finds the post tagged 'Category: travel'."""
        assert 2 in ids(view(mixed, search='cat', page_size=10))

    def test_title_author_tag(self, mixed):
        assert ids(view(mixed, search='cat', sort='oldest', page_size=10)) == [1, 3, 2]

    def test_search_after_kind_filter(self, mixed):
        assert ids(view(mixed, filter='docs', search='cat')) == [3]

    def test_no_match(self, mixed):
        assert view(mixed, search='nothing like this') == []


class TestSort:
    """newest / oldest / popular ordering."""

    def test_newest(self, mixed):
        assert ids(view(mixed, sort='newest', page_size=10)) == [2, 4, 3, 5, 1]

    def test_oldest(self, mixed):
        assert ids(view(mixed, sort='oldest', page_size=10)) == [1, 5, 3, 4, 2]

    def test_popular_is_stable(self, mixed):
        """Posts 1 and 4 tie on likes and keep input order."""
        assert ids(view(mixed, sort='popular', page_size=10)) == [2, 5, 1, 4, 3]

    def test_popular_filter_overrides_sort(self, mixed):
        assert ids(view(mixed, filter='popular', sort='oldest', page_size=10)) == [2, 5, 1, 4, 3]


class TestPagination:
    """Page windows of page_size * page_count."""

    def test_load_more(self):
        posts = make_posts(12)

        assert len(view(posts, page_size=5, page_count=1)) == 5
        assert len(view(posts, page_size=5, page_count=2)) == 10
        assert len(view(posts, page_size=5, page_count=3)) == 12

    def test_pages_only_grow(self):
        posts = make_posts(12)
        first = ids(view(posts, page_size=5, page_count=1))
        second = ids(view(posts, page_size=5, page_count=2))

        assert second[:5] == first

    def test_paginate_has_more(self):
        posts = make_posts(12)
        state = FeedState()

        page = paginate(posts, state, 5)
        assert (len(page.posts), page.total, page.has_more) == (5, 12, True)

        state.load_more()
        state.load_more()
        page = paginate(posts, state, 5)
        assert (len(page.posts), page.has_more) == (12, False)


class TestFeedState:
    """Control transitions."""

    def test_filter_resets_page(self):
        state = FeedState(page=3)
        state.set_filter('vlog')
        assert state.page == 1

    def test_search_resets_page(self):
        state = FeedState(page=4)
        state.set_search('cats')
        assert (state.search, state.page) == ('cats', 1)

    def test_sort_keeps_page(self):
        state = FeedState(page=2)
        state.set_sort('oldest')
        assert state.page == 2

    def test_popular_syncs_sort_control(self):
        state = FeedState(sort='oldest')
        state.set_filter('popular')
        assert state.sort == 'popular'
        assert state.effective_sort == 'popular'

    def test_sort_ignored_under_popular(self):
        state = FeedState()
        state.set_filter('popular')
        state.set_sort('newest')
        assert state.effective_sort == 'popular'

    def test_unknown_values(self):
        state = FeedState()
        with pytest.raises(ValueError):
            state.set_filter('podcast')
        with pytest.raises(ValueError):
            state.set_sort('random')


class TestCardHelpers:
    """Snippets, date labels and video embeds."""

    def test_snippet(self):
        article = make_post(1, content='x' * 200)
        assert snippet(article) == 'x' * 120 + '…'
        assert snippet(make_post(2, kind='vlog')) == '▶️ Video content'
        assert snippet(make_post(3, kind='docs')) == '📄 Document'

    def test_format_date(self):
        now = datetime(2024, 6, 10, 12, 0)
        assert format_date(datetime(2024, 6, 10, 0, 0), now=now) == 'Yesterday'
        assert format_date(datetime(2024, 6, 7, 12, 0), now=now) == '3d ago'
        assert format_date(datetime(2024, 5, 27, 12, 0), now=now) == '2w ago'
        assert format_date(datetime(2024, 1, 5), now=now) == 'Jan 5'
        assert format_date(datetime(2024, 1, 5), style='full') == 'January 5, 2024'
        assert format_date(None) == ''

    @pytest.mark.parametrize('url,expected', [
        ('https://youtu.be/abc123', 'https://www.youtube.com/embed/abc123'),
        ('https://youtu.be/abc123?t=4', 'https://www.youtube.com/embed/abc123'),
        ('https://www.youtube.com/watch?v=xyz&t=1', 'https://www.youtube.com/embed/xyz'),
        ('https://vimeo.com/76979871', 'https://player.vimeo.com/video/76979871'),
        ('http://testserver/uploads/videos/a.mp4', 'http://testserver/uploads/videos/a.mp4'),
        (None, None),
    ])
    def test_embed_url(self, url, expected):
        assert embed_url(url) == expected
