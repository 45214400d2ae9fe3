import numbers
import random

import numpy as np


class HexGameError(Exception):
    """Base class for errors raised by the Hex board engine."""


class InvalidDimension(HexGameError, ValueError):
    pass


class EmptyBoard(HexGameError):
    pass


class InvalidCount(HexGameError, ValueError):
    pass


class IllegalMove(HexGameError, ValueError):
    pass


class GameFinished(HexGameError):
    pass


def _is_integer(value):
    # numpy integers count, bools and floats do not
    return isinstance(value, numbers.Integral) and not isinstance(value, (bool, np.bool_))


class HexGame:
    """
    Hex board engine for random self-play.

    The N x N board is stored inside a (N+2) x (N+2) grid. The outer ring
    holds no stones and stands in for the board edges: rows 0 and N+1 are
    player 0's edges (X, top to bottom), columns 0 and N+1 are player 1's
    (O, left to right). Each grid cell has two slots in `board` and
    `connected`, one per player, at index `position * 2 + player`.

    Attributes:
    - board_dim (int): Size of the logical board.
    - board (List[int]): Occupancy bit per cell and player.
    - open_positions (List[int]): Grid addresses of the empty cells, in no particular order.
    - moves (List[int]): Logical indices (row * board_dim + col) of the stones played.
    - connected (List[int]): Cells known to reach the player's starting edge.
    - neighbors (List[int]): Grid offsets of the six hex neighbours.
    - winner (Optional[int]): Player that completed a connection, if any.
    """

    def __init__(self, board_dim: int, rng: random.Random = None):
        """
        Parameters:
        - board_dim: Size of the Hex board (e.g. 7 for a 7x7 board).
        - rng: Random source used for move selection. A fresh unseeded one is created if omitted.
        """
        if not _is_integer(board_dim) or board_dim <= 0:
            raise InvalidDimension(f"Board dimension must be a positive integer, got {board_dim!r}")

        self.board_dim = int(board_dim)
        self.width = self.board_dim + 2
        self.rng = rng if rng is not None else random.Random()

        self.board = [0] * (self.width * self.width * 2)
        self.connected = [0] * (self.width * self.width * 2)
        self.open_positions = []
        self.moves = []
        self.winner = None

        # Up-right, up-left, left, right, down-right, down-left
        self.neighbors = [-self.width + 1, -self.width, -1, 1, self.width, self.width - 1]

        self.init_board()

    def init_board(self):
        """Clear the board and start a new game."""
        self.open_positions = []
        for i in range(self.width):
            for j in range(self.width):
                position = i * self.width + j
                self.board[position * 2] = 0
                self.board[position * 2 + 1] = 0

                if 0 < i <= self.board_dim and 0 < j <= self.board_dim:
                    self.open_positions.append(position)

                # Only the starting edges are connected up front
                self.connected[position * 2] = 1 if i == 0 else 0
                self.connected[position * 2 + 1] = 1 if j == 0 else 0

        self.moves = []
        self.winner = None

    @property
    def number_of_open_positions(self) -> int:
        return len(self.open_positions)

    def to_logical(self, position: int) -> int:
        """Convert a grid address to a logical board index."""
        row = position // self.width - 1
        col = position % self.width - 1
        return row * self.board_dim + col

    def to_position(self, logical_position: int) -> int:
        """Convert a logical board index to a grid address."""
        row, col = divmod(logical_position, self.board_dim)
        return (row + 1) * self.width + (col + 1)

    def _check_player(self, player):
        if not _is_integer(player) or player not in (0, 1):
            raise IllegalMove(f"Player must be 0 or 1, got {player!r}")
        return int(player)

    def _check_position(self, position):
        if _is_integer(position):
            row, col = divmod(int(position), self.width)
            if 0 < row <= self.board_dim and 0 < col <= self.board_dim:
                return int(position)
        raise IllegalMove(f"Address {position!r} is not a cell of a {self.board_dim}x{self.board_dim} board")

    def _take_open_position(self, player, index):
        # Swap-remove: the last entry takes the freed slot, so pool order is not stable
        position = self.open_positions[index]
        self.board[position * 2 + player] = 1

        self.open_positions[index] = self.open_positions[-1]
        self.open_positions.pop()
        self.moves.append(self.to_logical(position))
        return position

    def place_piece_randomly(self, player: int) -> int:
        """
        Place a stone for `player` on a uniformly random empty cell.

        Returns:
        - int: Grid address of the new stone, to be passed to `check_win`.
        """
        player = self._check_player(player)
        if self.winner is not None:
            raise GameFinished(f"Player {self.winner} has already won this game")
        if not self.open_positions:
            raise EmptyBoard("No open positions left on the board")

        index = self.rng.randrange(len(self.open_positions))
        return self._take_open_position(player, index)

    def place_piece(self, player: int, logical_position: int) -> int:
        """Place a stone for `player` on a chosen empty cell and return its grid address."""
        player = self._check_player(player)
        if self.winner is not None:
            raise GameFinished(f"Player {self.winner} has already won this game")
        if not _is_integer(logical_position) or not 0 <= logical_position < self.board_dim * self.board_dim:
            raise IllegalMove(f"Cell {logical_position} is outside a {self.board_dim}x{self.board_dim} board")

        position = self.to_position(int(logical_position))
        if self.board[position * 2] or self.board[position * 2 + 1]:
            raise IllegalMove(f"Cell {logical_position} is already occupied")

        return self._take_open_position(player, self.open_positions.index(position))

    def _reached_far_edge(self, player, position):
        if player == 0:
            return position // self.width == self.board_dim
        return position % self.width == self.board_dim

    def connect(self, player: int, position: int) -> bool:
        """
        Spread the connected marks of `player` from `position` through adjacent stones.

        Cells already marked are not expanded again. Returns True as soon as a
        marked stone lies on the player's far edge.
        """
        self.connected[position * 2 + player] = 1
        stack = [position]
        while stack:
            cell = stack.pop()
            if self._reached_far_edge(player, cell):
                return True

            for offset in self.neighbors:
                neighbor = (cell + offset) * 2 + player
                if self.board[neighbor] and not self.connected[neighbor]:
                    self.connected[neighbor] = 1
                    stack.append(cell + offset)
        return False

    def check_win(self, player: int, position: int) -> bool:
        """Check whether the stone just placed at `position` completes a connection for `player`."""
        player = self._check_player(player)
        position = self._check_position(position)
        if not self.board[position * 2 + player]:
            raise IllegalMove(f"No stone of player {player} at address {position}")

        for offset in self.neighbors:
            if self.connected[(position + offset) * 2 + player]:
                if self.connect(player, position):
                    self.winner = player
                    return True
                return False
        # Not touching anything connected to the starting edge yet
        return False

    def full_board(self) -> bool:
        return not self.open_positions

    def remove_last_n_moves(self, n: int) -> list:
        """
        Take the last `n` stones off the board.

        Only the stones are cleared. The open positions, connected marks and
        winner still describe the finished game, so this is meant for showing
        an earlier snapshot rather than resuming play.

        Returns:
        - List[int]: Logical indices of the removed moves, most recent first.
        """
        if not _is_integer(n) or n < 0 or n > len(self.moves):
            raise InvalidCount(f"Cannot remove {n!r} moves, {len(self.moves)} have been played")
        n = int(n)

        removed_moves = []
        for _ in range(n):
            logical_position = self.moves.pop()
            removed_moves.append(logical_position)

            position = self.to_position(logical_position)
            self.board[position * 2] = 0
            self.board[position * 2 + 1] = 0
        return removed_moves

    def _cell_values(self):
        for i in range(1, self.board_dim + 1):
            for j in range(1, self.board_dim + 1):
                position = i * self.width + j
                if self.board[position * 2]:
                    yield 1
                elif self.board[position * 2 + 1]:
                    yield -1
                else:
                    yield 0

    def board_to_coord(self) -> np.ndarray:
        """Board in row-major order: 1 for X (player 0), -1 for O (player 1), 0 for empty."""
        return np.fromiter(self._cell_values(), dtype=np.int8, count=self.board_dim * self.board_dim)

    def board_to_string(self) -> str:
        """Board in row-major order as 'X', 'O' and ' ' characters."""
        symbols = {1: "X", -1: "O", 0: " "}
        return "".join(symbols[value] for value in self._cell_values())

    def render(self) -> str:
        """Text drawing of the board, each row shifted right by one more space."""
        cells = self.board_to_string().replace(" ", ".")
        lines = []
        for i in range(self.board_dim):
            row = cells[i * self.board_dim:(i + 1) * self.board_dim]
            lines.append(" " * i + "".join(" " + cell for cell in row))
        return "\n".join(lines)

    def __str__(self):
        return self.render()
