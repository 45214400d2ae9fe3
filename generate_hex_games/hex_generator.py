import csv
import logging
import os
import random
from dataclasses import dataclass, field
from multiprocessing import Pool
from typing import List, Optional

import numpy as np

from generate_hex_games.hex_game import HexGame, HexGameError
from generate_hex_games.hex_metadata import (
    DatasetStats, analyze_game_file, dataset_filename, ensure_directory_exists,
    generate_timestamp, metadata_filename, save_metadata,
)

log = logging.getLogger(__name__)

FORMATS = ("coord", "string")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass
class GeneratorConfig:
    total_games: int = 200000
    batch_size: Optional[int] = None  # None writes everything in one batch
    min_board_dim: int = 3
    max_board_dim: int = 15
    format: str = "coord"
    moves_before_end: int = 0
    random_start_player: bool = True
    seed: Optional[int] = None
    workers: int = 1
    data_dir: str = "data"
    metadata_dir: str = "metadata"

    def __post_init__(self):
        if self.total_games <= 0:
            raise ValueError(f"total_games must be positive, got {self.total_games}")
        if self.batch_size is None:
            self.batch_size = self.total_games
        if self.batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {self.batch_size}")
        if self.min_board_dim <= 0 or self.max_board_dim < self.min_board_dim:
            raise ValueError(f"Invalid board range {self.min_board_dim}..{self.max_board_dim}")
        if self.format not in FORMATS:
            raise ValueError(f"format must be one of {FORMATS}, got {self.format!r}")
        if self.moves_before_end < 0:
            raise ValueError(f"moves_before_end must not be negative, got {self.moves_before_end}")
        if self.workers <= 0:
            raise ValueError(f"workers must be positive, got {self.workers}")

    def board_dims(self):
        return range(self.min_board_dim, self.max_board_dim + 1)

    def seed_for(self, board_dim):
        return None if self.seed is None else self.seed + board_dim


@dataclass
class GameResult:
    board: object  # ternary numpy vector or X/O string, depending on format
    winner: int
    starting_player: int
    removed_moves: List[int] = field(default_factory=list)
    move_count: int = 0


@dataclass
class DatasetSummary:
    board_dim: int
    dataset_file: str
    metadata_file: str
    stats: DatasetStats


def simulate_game(game, moves_before_end=0, random_start_player=True, format="coord"):
    """
    Play one random game to the end, then step back `moves_before_end` moves.

    Returns:
    - GameResult: The snapshot after stepping back, with the winner and starting player of the full game.
    """
    game.init_board()

    starting_player = game.rng.randint(0, 1) if random_start_player else 0
    player = starting_player
    winner = None

    while not game.full_board():
        position = game.place_piece_randomly(player)
        if game.check_win(player, position):
            winner = player
            break
        player = 1 - player

    if winner is None:
        raise HexGameError("Board filled up without a winner")

    move_count = len(game.moves)
    n = min(moves_before_end, move_count)
    if n < moves_before_end:
        log.debug(f"Game ended after {move_count} moves, removing {n} instead of {moves_before_end}")
    removed_moves = game.remove_last_n_moves(n)

    board = game.board_to_coord() if format == "coord" else game.board_to_string()
    return GameResult(board, winner, starting_player, removed_moves, move_count)


def write_csv_headers(csv_writer, board_dim, format):
    if format == "coord":
        headers = [f"cell{i}_{j}" for i in range(board_dim) for j in range(board_dim)]
    else:
        headers = ["board"]
    csv_writer.writerow(headers + ["starting_player", "winner"])


def result_to_row(result):
    if isinstance(result.board, np.ndarray):
        cells = result.board.tolist()
    else:
        cells = [result.board]
    return cells + [result.starting_player, result.winner]


def append_games_to_csv(filename, results):
    with open(filename, mode="a", newline="") as file:
        csv_writer = csv.writer(file)
        for result in results:
            csv_writer.writerow(result_to_row(result))


def generate_dataset(config, board_dim, timestamp=None):
    """
    Generate `config.total_games` games on one board size and write the dataset and its metadata.

    Parameters:
    - config: GeneratorConfig with the run parameters.
    - board_dim: Size of the board to play on.
    - timestamp: Filename timestamp; a fresh one is taken if omitted.

    Returns:
    - DatasetSummary: Where the files went and what the dataset contains.
    """
    ensure_directory_exists(config.data_dir)
    ensure_directory_exists(config.metadata_dir)

    timestamp = timestamp or generate_timestamp()
    filename = os.path.join(
        config.data_dir,
        dataset_filename(board_dim, config.total_games, config.format, timestamp, config.moves_before_end),
    )

    with open(filename, mode="w", newline="") as file:
        write_csv_headers(csv.writer(file), board_dim, config.format)

    game = HexGame(board_dim, rng=random.Random(config.seed_for(board_dim)))
    game_results = []
    removed_moves_per_game = []

    for _ in range(config.total_games):
        result = simulate_game(game, config.moves_before_end, config.random_start_player, config.format)
        game_results.append(result)
        removed_moves_per_game.append(result.removed_moves)

        if len(game_results) >= config.batch_size:
            append_games_to_csv(filename, game_results)
            log.info(f"Writing {len(game_results)} games to {board_dim}x{board_dim}")
            game_results.clear()

    if game_results:
        append_games_to_csv(filename, game_results)
        log.info(f"Writing {len(game_results)} games to {board_dim}x{board_dim}")

    stats = analyze_game_file(filename, config.format)
    metadata_file = os.path.join(config.metadata_dir, metadata_filename(filename))
    save_metadata(
        metadata_file, filename, board_dim, stats, config.format, generate_timestamp(detailed=True),
        removed_moves_per_game, config.moves_before_end,
    )

    log.info(
        f"{board_dim}x{board_dim}: {stats.total_games} games, {stats.unique_games} unique, "
        f"X wins {stats.wins_player_x}, O wins {stats.wins_player_o}"
    )
    return DatasetSummary(board_dim, filename, metadata_file, stats)


def configure_worker_logging(level):
    """Pool initializer: spawned workers start without the parent's logging setup."""
    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
    root.setLevel(level)


def generate_datasets(config):
    """Generate one dataset per board size in the configured range."""
    timestamp = generate_timestamp()
    worker_args = [(config, board_dim, timestamp) for board_dim in config.board_dims()]

    if config.workers == 1:
        return [generate_dataset(*args) for args in worker_args]

    log.info(f"Using {config.workers} worker processes.")
    level = logging.getLogger().getEffectiveLevel()
    with Pool(processes=config.workers, initializer=configure_worker_logging, initargs=(level,)) as pool:
        return pool.starmap(generate_dataset, worker_args)
