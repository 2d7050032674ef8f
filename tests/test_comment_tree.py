"""
Comment forest reconstruction tests.
"""
from glassblog.comment_tree import build_tree, count_comments, walk
from data_builder import make_comment


def shape(forest):
    """Nested (id, [children]) tuples for easy comparison."""
    return [(n.comment.id, shape(n.replies)) for n in forest]


def all_ids(forest):
    return [node.comment.id for _, node in walk(forest)]


class TestBuildTree:
    """Parent links to nested replies."""

    def test_missing_parent_falls_back_to_top_level(self):
        """A reply to an unknown comment is shown top-level."""
        comments = [make_comment(1), make_comment(2, parent_id=1), make_comment(3, parent_id=99)]

        assert shape(build_tree(comments)) == [(1, [(2, [])]), (3, [])]

    def test_every_comment_once(self):
        """No comment is lost or duplicated at any depth."""
        comments = [
            make_comment(1), make_comment(2, parent_id=1), make_comment(3, parent_id=2),
            make_comment(4), make_comment(5, parent_id=1), make_comment(6, parent_id=3),
            make_comment(7, parent_id=4), make_comment(8, parent_id=42),
        ]

        ids = all_ids(build_tree(comments))

        assert sorted(ids) == [1, 2, 3, 4, 5, 6, 7, 8]
        assert len(ids) == len(set(ids))

    def test_order_is_stable(self):
        """Roots and siblings keep input order."""
        comments = [
            make_comment(5), make_comment(2, parent_id=5), make_comment(9),
            make_comment(1, parent_id=5), make_comment(3),
        ]

        assert shape(build_tree(comments)) == [(5, [(2, []), (1, [])]), (9, []), (3, [])]

    def test_reply_listed_before_parent(self):
        """Input order does not need parents first."""
        comments = [make_comment(2, parent_id=1), make_comment(1)]

        assert shape(build_tree(comments)) == [(1, [(2, [])])]

    def test_self_parent(self):
        """A comment pointing at itself is top-level."""
        assert shape(build_tree([make_comment(1, parent_id=1)])) == [(1, [])]

    def test_cycle_is_broken(self):
        """Comments in a parent cycle are still shown once."""
        comments = [
            make_comment(1, parent_id=3), make_comment(2, parent_id=1),
            make_comment(3, parent_id=2), make_comment(4),
        ]

        forest = build_tree(comments)

        assert shape(forest) == [(1, [(2, [(3, [])])]), (4, [])]

    def test_depth_cut_off(self):
        """Replies past max_depth hang off the deepest allowed ancestor."""
        comments = [make_comment(1)] + [make_comment(i, parent_id=i - 1) for i in range(2, 6)]

        forest = build_tree(comments, max_depth=1)

        assert shape(forest) == [(1, [(2, []), (3, []), (4, []), (5, [])])]
        assert max(depth for depth, _ in walk(forest)) == 1

    def test_zero_depth_flattens(self):
        """max_depth=0 renders a flat list."""
        comments = [make_comment(1), make_comment(2, parent_id=1), make_comment(3, parent_id=2)]

        assert shape(build_tree(comments, max_depth=0)) == [(1, []), (2, []), (3, [])]

    def test_long_chain(self):
        """A very long reply chain builds without recursion errors."""
        comments = [make_comment(1)] + [make_comment(i, parent_id=i - 1) for i in range(2, 5001)]

        forest = build_tree(comments)

        assert count_comments(forest) == 5000
        assert max(depth for depth, _ in walk(forest)) == 32

    def test_input_untouched(self):
        """Building is a projection; the flat list is not modified."""
        comments = [make_comment(1), make_comment(2, parent_id=1), make_comment(3, parent_id=7)]
        before = [c.model_dump() for c in comments]

        build_tree(comments)
        build_tree(comments)

        assert [c.model_dump() for c in comments] == before

    def test_empty(self):
        assert build_tree([]) == []
