"""Rebuild the reply forest of one post from its flat comment list.

The tree is a projection: it is recomputed after every reload and never
touches the comments it was built from. Malformed parent links (missing
parent, self-reference, cycles) degrade to top-level comments, and nesting
deeper than ``max_depth`` is folded onto the deepest allowed ancestor, so
every comment is rendered exactly once.
"""
import logging
from collections import defaultdict, deque
from typing import Dict, List, Sequence

from .schemas import CommentNode, CommentView

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 32


def build_tree(comments: Sequence[CommentView], max_depth: int = DEFAULT_MAX_DEPTH) -> List[CommentNode]:
    max_depth = max(max_depth, 0)
    order = {c.id: i for i, c in enumerate(comments)}
    children: Dict[int, List[CommentView]] = defaultdict(list)
    roots: List[CommentView] = []
    for c in comments:
        if c.parent_id is None or c.parent_id == c.id or c.parent_id not in order:
            roots.append(c)
        else:
            children[c.parent_id].append(c)

    nodes: Dict[int, CommentNode] = {}
    placed: List[CommentNode] = []

    def grow(root: CommentView) -> None:
        # (comment, node it hangs under, its depth); breadth-first keeps sibling order
        queue = deque([(root, None, 0)])
        while queue:
            comment, holder, depth = queue.popleft()
            if comment.id in nodes:
                continue
            node = CommentNode(comment=comment)
            nodes[comment.id] = node
            if holder is None:
                placed.append(node)
            else:
                holder[0].replies.append(node)
            if depth < max_depth:
                next_holder, next_depth = (node, holder), depth + 1
            else:
                # too deep: replies become siblings at the cut-off level
                next_holder, next_depth = holder, depth
            for child in children.get(comment.id, ()):
                queue.append((child, next_holder, next_depth))

    for root in roots:
        grow(root)

    if len(nodes) < len(order):
        # whatever is left hangs off a parent cycle; promote its first member
        for c in comments:
            if c.id not in nodes:
                logger.warning("Comment %s is part of a reply cycle; showing it top-level", c.id)
                grow(c)

    placed.sort(key=lambda n: order[n.comment.id])
    return placed


def walk(forest: Sequence[CommentNode]):
    """Yield ``(depth, node)`` pairs depth-first without recursion."""
    stack = [(0, n) for n in reversed(forest)]
    while stack:
        depth, node = stack.pop()
        yield depth, node
        stack.extend((depth + 1, r) for r in reversed(node.replies))


def count_comments(forest: Sequence[CommentNode]) -> int:
    return sum(1 for _ in walk(forest))
