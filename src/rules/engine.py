"""
Rules engine collaborator.

The session layer never evaluates chess rules itself: it hands the authoritative position and the
submitted notation to a RulesEngine and stores whatever position comes back.
The default implementation wraps python-chess.
"""

from dataclasses import dataclass
from typing import Optional, Protocol, Sequence

import chess

from src.core.exceptions import InvalidMoveError
from src.core.shared_types import TerminationReason

FIFTY_MOVE_HALFMOVES = 100
REPETITION_COUNT = 3


@dataclass(frozen=True)
class AppliedMove:
    """Position after a legal move, plus the move in normalized (SAN) notation."""

    position: str
    notation: str


class RulesEngine(Protocol):
    def apply_move(self, position: str, notation: str) -> AppliedMove:
        """Resulting position, or raise InvalidMoveError."""
        ...

    def is_terminal(
        self, position: str, previous_positions: Sequence[str]
    ) -> Optional[TerminationReason]:
        """Reason the game is over in `position` (given earlier positions of the game), else None."""
        ...


def position_key(fen: str) -> str:
    """The part of a FEN that identifies a position for repetition: placement, side, castling, en passant."""
    return " ".join(fen.split(" ")[:4])


class PythonChessRules:
    """RulesEngine backed by python-chess. Positions are FEN strings; SAN and UCI input are both accepted."""

    def apply_move(self, position: str, notation: str) -> AppliedMove:
        board = self._board(position)
        move = self._parse(board, notation.strip())
        san = board.san(move)
        board.push(move)
        return AppliedMove(position=board.fen(), notation=san)

    def is_terminal(
        self, position: str, previous_positions: Sequence[str]
    ) -> Optional[TerminationReason]:
        board = self._board(position)
        if board.is_checkmate():
            return TerminationReason.CHECKMATE
        if board.is_stalemate():
            return TerminationReason.STALEMATE
        if board.is_insufficient_material():
            return TerminationReason.INSUFFICIENT_MATERIAL

        key = position_key(position)
        occurrences = 1 + sum(
            1 for previous in previous_positions if position_key(previous) == key
        )
        if occurrences >= REPETITION_COUNT:
            return TerminationReason.THREEFOLD_REPETITION
        if board.halfmove_clock >= FIFTY_MOVE_HALFMOVES:
            return TerminationReason.FIFTY_MOVE_RULE
        return None

    @staticmethod
    def _board(position: str) -> chess.Board:
        try:
            return chess.Board(position)
        except ValueError as e:
            raise InvalidMoveError(f"Stored position is not a valid FEN: {position!r}") from e

    @staticmethod
    def _parse(board: chess.Board, notation: str) -> chess.Move:
        """Try SAN first (what players type), then UCI (what board widgets send)."""
        try:
            return board.parse_san(notation)
        except ValueError:
            return PythonChessRules._parse_uci(board, notation)

    @staticmethod
    def _parse_uci(board: chess.Board, notation: str) -> chess.Move:
        try:
            move = chess.Move.from_uci(notation)
        except ValueError as e:
            raise InvalidMoveError(f"Move not allowed: {notation!r}") from e
        if move not in board.legal_moves:
            raise InvalidMoveError(f"Move not allowed: {notation!r}")
        return move
