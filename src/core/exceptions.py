"""
Custom exceptions shared by all layers.

Every error here is request-local: it is raised before (or instead of) any state change,
and the API layer translates it into an HTTP status code.
"""


class ChessClubError(Exception):
    """Top-level exception for anything the session subsystem rejects."""


# --- Request / identity ---
class InvalidRequestError(ChessClubError):
    """Request is structurally valid JSON but its content is not acceptable."""


class AuthenticationError(ChessClubError):
    """No identity, or an identity that could not be verified."""


# --- Persistence ---
class RepositoryError(ChessClubError):
    """Something went wrong looking up or storing a record."""


class PlayerNotFoundError(RepositoryError):
    pass


class ChallengeNotFoundError(RepositoryError):
    """No matching pending challenge (or the requester may not act on it)."""


class GameNotFoundError(RepositoryError):
    pass


# --- Challenge rules ---
class DuplicateChallengeError(ChessClubError):
    """A pending challenge already exists between the two players."""


# --- Session rules ---
class GameError(ChessClubError):
    """Top-level exception for move/termination rejections on a session."""


class NotParticipantError(GameError):
    pass


class NotYourTurnError(GameError):
    pass


class GameAlreadyCompletedError(GameError):
    pass


class InvalidMoveError(GameError):
    """Move rejected by the rules engine."""


class StaleVersionError(GameError):
    """Lost an optimistic-concurrency race: the session changed since it was read."""
