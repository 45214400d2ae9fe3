import logging
import random

import numpy as np
import pandas as pd

from generate_hex_games.hex_metadata import read_game_file

log = logging.getLogger(__name__)

# Player index stored in the 'winner' column
CLASSES = (0, 1)

CELL_VALUES = {"X": 1, "O": -1, " ": 0}


class HexDataLoader:
    """
    A class to load and handle a generated Hex game dataset.
    """
    def __init__(self, data_file, board_size=7, format="coord"):
        """
        Initializes the data loader with the dataset file path and board size.

        Parameters:
        - data_file: Path to the CSV file containing the dataset.
        - board_size: Size of the Hex board the games were played on.
        - format: "coord" (one column per cell) or "string" (one 'board' column of X/O/space).
        """
        self.data_file = data_file
        self.board_size = board_size
        self.format = format
        self.data = None
        self.X = None
        self.y = None

    def cell_columns(self):
        return [f"cell{i}_{j}" for i in range(self.board_size) for j in range(self.board_size)]

    def _decode_boards(self, chunk):
        """Turn the X/O/space board strings of a chunk into one ternary column per cell."""
        cells = np.array(
            [[CELL_VALUES[c] for c in board.ljust(self.board_size * self.board_size)] for board in chunk["board"]],
            dtype=np.int8,
        ).reshape(len(chunk), self.board_size * self.board_size)
        decoded = pd.DataFrame(cells, columns=self.cell_columns(), index=chunk.index)
        return pd.concat([decoded, chunk.drop(columns="board")], axis=1)

    def load_data(self, desired_samples_per_class, balance_classes=True, random_state=42):
        """
        Loads the dataset from the CSV file with the desired number of samples for each winner.

        Parameters:
        - desired_samples_per_class: The specific number of samples to load per class.
        - balance_classes: Must be True. Ensures that the dataset has an equal number of samples for each class.
        - random_state: Seed for the shuffles, so repeated loads pick the same rows.
        """
        if not balance_classes:
            raise ValueError("balance_classes must be True when specifying desired_samples_per_class.")

        collected = {winner: [] for winner in CLASSES}
        counts = {winner: 0 for winner in CLASSES}

        # Read the CSV file in chunks to handle large datasets
        with read_game_file(self.data_file, self.format) as reader:
            for chunk in reader:
                if self.format == "string":
                    chunk = self._decode_boards(chunk)

                chunk = chunk.sample(frac=1, random_state=random_state).reset_index(drop=True)

                for winner in CLASSES:
                    needed = desired_samples_per_class - counts[winner]
                    class_chunk = chunk[chunk["winner"] == winner]
                    if needed > 0 and not class_chunk.empty:
                        to_take = min(needed, len(class_chunk))
                        collected[winner].append(class_chunk.sample(n=to_take, random_state=random_state))
                        counts[winner] += to_take

                # Check if we have collected enough samples
                if all(count >= desired_samples_per_class for count in counts.values()):
                    break

        # Handle the case where not enough samples are available
        if any(count < desired_samples_per_class for count in counts.values()):
            log.warning(
                f"Not enough samples collected. Collected {counts[0]} X wins and {counts[1]} O wins."
            )
            desired_samples_per_class = min(counts.values())

        frames = []
        for winner in CLASSES:
            if collected[winner]:
                frames.append(pd.concat(collected[winner]).head(desired_samples_per_class))
        if not frames or desired_samples_per_class == 0:
            raise ValueError(f"No samples of both classes found in {self.data_file}")

        # Combine and shuffle the balanced classes
        self.data = pd.concat(frames).sample(frac=1, random_state=random_state).reset_index(drop=True)

        # Separate features (board states) and labels (winner)
        self.X = self.data[self.cell_columns()]
        self.y = self.data["winner"]

    def get_random_entry(self, rng=None):
        """
        Retrieves a random game state and its winner.

        Returns:
        - board_state: The cells of one game, indexed by 'cell{row}_{col}'.
        - winner: The winner of the game (0 for X, 1 for O).
        """
        rng = rng or random
        idx = rng.randint(0, len(self.X) - 1)
        board_state = self.X.iloc[idx]
        winner = self.y.iloc[idx]
        return board_state, winner

    def get_all_data(self):
        """
        Retrieves the entire dataset in a format ready for model input.

        Returns:
        - X: The board states as a NumPy array of shape (samples, board_size * board_size).
        - y: The game winners as a NumPy array.
        """
        X = self.X.values
        y = self.y.values
        return X, y
