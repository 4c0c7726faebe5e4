"""Discussion board helpers: ordering, search, likes and comment threading."""

from typing import Iterable, List, Optional, Sequence, Tuple

from learning_platform.models import Comment, Discussion, as_utc

DISCUSSION_SORTS = ("recent", "popular", "active")
COMMENT_SORTS = ("oldest", "newest", "popular")


def toggle_like(liked_by: Optional[Sequence[str]], uid: str) -> Tuple[list, bool]:
    """Return the new liker list and whether ``uid`` now likes the item."""
    likers = list(liked_by or [])
    if uid in likers:
        return [u for u in likers if u != uid], False
    return likers + [uid], True


def matches_search(discussion: Discussion, term: str) -> bool:
    term = term.lower()
    return (
        term in discussion.title.lower()
        or term in discussion.content.lower()
        or any(term in tag.lower() for tag in discussion.tags or [])
    )


def sort_discussions(discussions: Iterable[Discussion], sort: str = "recent") -> List[Discussion]:
    """Order discussions for listing; pinned ones always float to the top."""
    if sort == "popular":
        key = lambda d: d.likes_count  # noqa: E731
    elif sort == "active":
        key = lambda d: as_utc(d.last_activity_at)  # noqa: E731
    else:
        key = lambda d: as_utc(d.created_at)  # noqa: E731
    ordered = sorted(discussions, key=key, reverse=True)
    # sorted() is stable, so this keeps the order above within each group
    return sorted(ordered, key=lambda d: not d.is_pinned)


def sort_comments(comments: Iterable[Comment], sort: str = "oldest") -> List[Comment]:
    if sort == "newest":
        return sorted(comments, key=lambda c: as_utc(c.created_at), reverse=True)
    if sort == "popular":
        return sorted(comments, key=lambda c: c.likes_count or 0, reverse=True)
    return sorted(comments, key=lambda c: as_utc(c.created_at))


def build_comment_tree(comments: Sequence[Comment]) -> List[dict]:
    """Nest replies under their parents.

    Two passes: first a node per comment keyed by id, then each node is
    attached to its parent's replies (or the roots). Replies whose parent is
    not in ``comments`` are dropped. Sibling order follows the input order.
    """
    nodes = {}
    for comment in comments:
        node = comment.model_dump()
        node["replies"] = []
        nodes[comment.id] = node

    roots: List[dict] = []
    for comment in comments:
        node = nodes[comment.id]
        if comment.parent_id:
            parent = nodes.get(comment.parent_id)
            if parent is not None:
                parent["replies"].append(node)
        else:
            roots.append(node)
    return roots
