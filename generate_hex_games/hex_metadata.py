import logging
import os
from dataclasses import dataclass
from datetime import datetime

import pandas as pd

log = logging.getLogger(__name__)

METADATA_COLUMNS = [
    "Filename", "Board Dimension", "Total Games", "Unique Games", "Player X Wins",
    "Player O Wins", "Format", "Timestamp", "Moves Before End", "Removed Moves",
]

# Columns that label a row rather than describe the board
LABEL_COLUMNS = ["starting_player", "winner"]


@dataclass
class DatasetStats:
    total_games: int = 0
    unique_games: int = 0
    wins_player_x: int = 0
    wins_player_o: int = 0


def generate_timestamp(detailed=False):
    """Timestamp for filenames (HHMMSS), or a full date with milliseconds when detailed."""
    now = datetime.now()
    if detailed:
        return now.strftime("%Y%m%d:%H%M%S") + f".{now.microsecond // 1000:03d}"
    return now.strftime("%H%M%S")


def dataset_filename(board_dim, total_games, format, timestamp, moves_before_end):
    return f"{board_dim}x{board_dim}_{total_games}_{format}_{timestamp}_{moves_before_end}.csv"


def metadata_filename(dataset_file):
    return f"metadata_{os.path.basename(dataset_file)}"


def ensure_directory_exists(directory):
    """Create `directory` if needed. Returns True if it was created."""
    if os.path.isdir(directory):
        return False
    log.info(f"Creating directory: {directory}")
    os.makedirs(directory, exist_ok=True)
    return True


def read_game_file(filename, format, chunksize=10000):
    """Iterate over a generated dataset in chunks of `chunksize` rows."""
    if format == "string":
        # Boards are made of 'X', 'O' and spaces; keep them verbatim
        return pd.read_csv(filename, chunksize=chunksize, dtype={"board": str}, keep_default_na=False)
    return pd.read_csv(filename, chunksize=chunksize)


def analyze_game_file(filename, format):
    """
    Count games, distinct board states and wins per player in a generated dataset.

    Parameters:
    - filename: Path to the CSV file written by the generator.
    - format: "coord" or "string", the layout the file was written in.

    Returns:
    - DatasetStats: Zeros if the file cannot be read.
    """
    stats = DatasetStats()
    unique_games = set()

    try:
        with read_game_file(filename, format) as reader:
            for chunk in reader:
                board_columns = [column for column in chunk.columns if column not in LABEL_COLUMNS]
                unique_games.update(chunk[board_columns].itertuples(index=False, name=None))

                stats.total_games += len(chunk)
                stats.wins_player_x += int((chunk["winner"] == 0).sum())
                stats.wins_player_o += int((chunk["winner"] == 1).sum())
    except (OSError, pd.errors.ParserError, pd.errors.EmptyDataError) as exc:
        log.error(f"Failed to read game file {filename}: {exc}")
        return DatasetStats()

    stats.unique_games = len(unique_games)
    return stats


def format_removed_moves(removed_moves_per_game):
    """Serialize removed moves as {{a,b},{c,d}}, one group per game."""
    groups = ("{" + ",".join(str(move) for move in moves) + "}" for moves in removed_moves_per_game)
    return "{" + ",".join(groups) + "}"


def save_metadata(metadata_file, dataset_file, board_dim, stats, format, timestamp,
                  removed_moves_per_game, moves_before_end):
    """Write the one-row metadata CSV that accompanies a generated dataset."""
    row = [
        os.path.basename(dataset_file),
        f"{board_dim}x{board_dim}",
        stats.total_games,
        stats.unique_games,
        stats.wins_player_x,
        stats.wins_player_o,
        format,
        timestamp,
        moves_before_end,
        format_removed_moves(removed_moves_per_game),
    ]
    pd.DataFrame([row], columns=METADATA_COLUMNS).to_csv(metadata_file, index=False)
    log.info(f"Metadata saved to {metadata_file}")
