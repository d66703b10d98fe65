"""
Graph service — domain-specific HTTP exceptions.

All exceptions use preset status codes and detail messages so that callers
never need to specify these at the call site.  Each one also carries a
machine-readable ``code`` that the shared error envelope exposes to clients:

  not_found           referenced user or request does not exist   (404)
  invalid_operation   self-relations, redundant actions, empty input (400)
  permission_denied   private relationship lists                    (403)
  conflict            unrecoverable unique-constraint race          (409)
"""
from fastapi import HTTPException, status


class GraphError(HTTPException):
    code: str = "graph_error"

    def __init__(self, status_code: int, detail: str) -> None:
        super().__init__(status_code=status_code, detail=detail)


# ── Taxonomy ──────────────────────────────────────────────────────────────────

class NotFoundError(GraphError):
    code = "not_found"

    def __init__(self, detail: str = "Resource not found.") -> None:
        super().__init__(status.HTTP_404_NOT_FOUND, detail)


class InvalidOperationError(GraphError):
    code = "invalid_operation"

    def __init__(self, detail: str = "This operation is not allowed.") -> None:
        super().__init__(status.HTTP_400_BAD_REQUEST, detail)


class PermissionDeniedError(GraphError):
    code = "permission_denied"

    def __init__(self, detail: str = "You do not have permission to view this.") -> None:
        super().__init__(status.HTTP_403_FORBIDDEN, detail)


class ConflictError(GraphError):
    code = "conflict"

    def __init__(self, detail: str = "The request conflicts with a concurrent change.") -> None:
        super().__init__(status.HTTP_409_CONFLICT, detail)


# ── Users ─────────────────────────────────────────────────────────────────────

class UserNotFound(NotFoundError):
    def __init__(self) -> None:
        super().__init__("User not found.")


class UserHiddenByBlock(NotFoundError):
    """Target user has blocked the current user — same 404 as a missing user."""

    def __init__(self) -> None:
        super().__init__("User not found.")


class PrivateAccount(PermissionDeniedError):
    def __init__(self) -> None:
        super().__init__("This account is private.")


# ── Follow ────────────────────────────────────────────────────────────────────

class CannotFollowSelf(InvalidOperationError):
    def __init__(self) -> None:
        super().__init__("You cannot follow yourself.")


class CannotUnfollowSelf(InvalidOperationError):
    def __init__(self) -> None:
        super().__init__("You cannot unfollow yourself.")


class NotFollowing(InvalidOperationError):
    def __init__(self) -> None:
        super().__init__("You are not following this user.")


class FollowingBlockedUser(InvalidOperationError):
    def __init__(self) -> None:
        super().__init__("You have blocked this user. Unblock them first.")


# ── Follow requests ───────────────────────────────────────────────────────────

class FollowRequestNotFound(NotFoundError):
    def __init__(self) -> None:
        super().__init__("Follow request not found.")


# ── Block ─────────────────────────────────────────────────────────────────────

class CannotBlockSelf(InvalidOperationError):
    def __init__(self) -> None:
        super().__init__("You cannot block yourself.")


# ── Close friends ─────────────────────────────────────────────────────────────

class CannotCloseFriendSelf(InvalidOperationError):
    def __init__(self) -> None:
        super().__init__("You cannot add yourself to close friends.")


class EmptyCloseFriendsInput(InvalidOperationError):
    def __init__(self) -> None:
        super().__init__("No users to add to close friends.")


class CloseFriendUsersNotFound(NotFoundError):
    def __init__(self) -> None:
        super().__init__("None of the given users were found.")
