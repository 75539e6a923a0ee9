"""Tic-tac-toe rule module.

State layout:
    {"board": ["", "X", ...9 cells], "marks": {playerId: "X"|"O"},
     "turn": index into the roster of the player to move, "moves": int}

Move layout: {"cell": 0..8}, row-major from the top-left corner.
"""

from __future__ import annotations

import copy

from gameserver.errors import IllegalMove, NotYourTurn
from gameserver.rules.base import MoveResult, Outcome
from gameserver.utils.constants import (
    BOARD_SIZE,
    EMPTY_CELL,
    GAME_TIC_TAC_TOE,
    MARKS,
    WINNING_LINES,
)


class TicTacToeRules:
    name = GAME_TIC_TAC_TOE

    def initial_state(self, player_ids: list[str], rules: dict | None = None) -> dict:
        if len(player_ids) != len(MARKS):
            raise ValueError(f"Tic-tac-toe needs exactly 2 players, got {len(player_ids)}")
        return {
            "board": [EMPTY_CELL] * (BOARD_SIZE * BOARD_SIZE),
            "marks": {pid: MARKS[i] for i, pid in enumerate(player_ids)},
            "order": list(player_ids),
            "turn": 0,
            "moves": 0,
        }

    def validate_move(self, state: dict, player_id: str, move: dict) -> MoveResult:
        order = state["order"]
        if order[state["turn"]] != player_id:
            return MoveResult(False, error=NotYourTurn(f"It is {order[state['turn']]}'s turn"))

        if self.outcome(state).is_terminal:
            return MoveResult(False, error=IllegalMove("The board is already decided"))

        cell = move.get("cell") if isinstance(move, dict) else None
        if isinstance(cell, bool) or not isinstance(cell, int):
            return MoveResult(False, error=IllegalMove("Move must be {'cell': 0-8}"))
        if not 0 <= cell < len(state["board"]):
            return MoveResult(False, error=IllegalMove(f"Cell {cell} is off the board"))
        if state["board"][cell] != EMPTY_CELL:
            return MoveResult(False, error=IllegalMove(f"Cell {cell} is occupied"))

        new_state = copy.deepcopy(state)
        new_state["board"][cell] = state["marks"][player_id]
        new_state["turn"] = (state["turn"] + 1) % len(order)
        new_state["moves"] = state["moves"] + 1
        return MoveResult(True, state=new_state)

    def outcome(self, state: dict) -> Outcome:
        board = state["board"]
        owners = {mark: pid for pid, mark in state["marks"].items()}
        for a, b, c in WINNING_LINES:
            if board[a] != EMPTY_CELL and board[a] == board[b] == board[c]:
                return Outcome.win(owners[board[a]])
        if all(cell != EMPTY_CELL for cell in board):
            return Outcome.draw()
        return Outcome.ongoing()

    def next_player(self, state: dict, player_ids: list[str]) -> str:
        return player_ids[state["turn"] % len(player_ids)]

    def legal_moves(self, state: dict, player_id: str) -> list[dict]:
        if self.outcome(state).is_terminal or state["order"][state["turn"]] != player_id:
            return []
        return [{"cell": i} for i, mark in enumerate(state["board"]) if mark == EMPTY_CELL]

    @staticmethod
    def render(state: dict) -> str:
        """Plain-text board, used by the CLI tools."""
        rows = []
        for r in range(BOARD_SIZE):
            cells = state["board"][r * BOARD_SIZE:(r + 1) * BOARD_SIZE]
            rows.append(" | ".join(c or "." for c in cells))
        return "\n".join(rows)
