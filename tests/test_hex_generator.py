import logging
import os
import random
import re

import numpy as np
import pandas as pd
import pytest

from generate_hex_games.hex_game import HexGame
from generate_hex_games.hex_generator import (
    LOG_FORMAT, GameResult, GeneratorConfig, configure_worker_logging, generate_dataset, generate_datasets,
    result_to_row, simulate_game,
)
from generate_hex_games.hex_metadata import (
    DatasetStats, analyze_game_file, dataset_filename, ensure_directory_exists, format_removed_moves,
    generate_timestamp, metadata_filename,
)


def small_config(tmp_path, **kwargs):
    settings = dict(
        total_games=20, batch_size=7, min_board_dim=3, max_board_dim=3, seed=11,
        data_dir=str(tmp_path / "data"), metadata_dir=str(tmp_path / "metadata"),
    )
    settings.update(kwargs)
    return GeneratorConfig(**settings)


class TestGeneratorConfig:
    def test_defaults(self):
        config = GeneratorConfig()
        assert config.total_games == 200000
        assert config.batch_size == config.total_games
        assert list(config.board_dims()) == list(range(3, 16))
        assert config.format == "coord"
        assert config.moves_before_end == 0

    @pytest.mark.parametrize("kwargs", [
        {"total_games": 0},
        {"batch_size": 0},
        {"min_board_dim": 0},
        {"min_board_dim": 6, "max_board_dim": 5},
        {"format": "json"},
        {"moves_before_end": -1},
        {"workers": 0},
    ])
    def test_invalid(self, kwargs):
        with pytest.raises(ValueError):
            GeneratorConfig(**kwargs)

    def test_seed_per_board_size(self):
        assert GeneratorConfig(seed=100).seed_for(7) == 107
        assert GeneratorConfig().seed_for(7) is None


class TestSimulateGame:
    def test_full_game(self):
        game = HexGame(5, rng=random.Random(4))
        result = simulate_game(game)

        assert result.winner in (0, 1)
        assert result.starting_player in (0, 1)
        assert result.removed_moves == []
        assert result.move_count == len(game.moves)
        assert np.count_nonzero(result.board) == result.move_count
        assert game.winner == result.winner

    def test_step_back(self):
        game = HexGame(5, rng=random.Random(4))
        result = simulate_game(game, moves_before_end=2)

        assert len(result.removed_moves) == 2
        assert np.count_nonzero(result.board) == result.move_count - 2
        for cell in result.removed_moves:
            assert result.board[cell] == 0

    def test_step_back_more_than_played(self):
        game = HexGame(3, rng=random.Random(9))
        result = simulate_game(game, moves_before_end=1000)
        assert len(result.removed_moves) == result.move_count
        assert not result.board.any()

    def test_fixed_start_player(self):
        for seed in range(10):
            result = simulate_game(HexGame(4, rng=random.Random(seed)), random_start_player=False)
            assert result.starting_player == 0
            # X moved first, so X has as many stones as O or one more
            x_stones = int((result.board == 1).sum())
            o_stones = int((result.board == -1).sum())
            assert x_stones - o_stones in (0, 1)

    def test_winner_moved_last(self):
        for seed in range(10):
            result = simulate_game(HexGame(4, rng=random.Random(seed)))
            last_mover = (result.starting_player + result.move_count - 1) % 2
            assert result.winner == last_mover

    def test_both_start_players_occur(self):
        game = HexGame(3, rng=random.Random(0))
        starts = {simulate_game(game).starting_player for _ in range(50)}
        assert starts == {0, 1}

    def test_string_format(self):
        result = simulate_game(HexGame(4, rng=random.Random(1)), format="string")
        assert isinstance(result.board, str)
        assert len(result.board) == 16
        assert len(result.board.replace(" ", "")) == result.move_count

    def test_reproducible(self):
        first = [simulate_game(HexGame(6, rng=random.Random(77))) for _ in range(3)]
        second = [simulate_game(HexGame(6, rng=random.Random(77))) for _ in range(3)]
        for a, b in zip(first, second):
            assert a.board.tolist() == b.board.tolist()
            assert (a.winner, a.starting_player) == (b.winner, b.starting_player)

    def test_reuses_engine(self):
        game = HexGame(4, rng=random.Random(3))
        for _ in range(20):
            result = simulate_game(game, moves_before_end=1)
            assert np.count_nonzero(result.board) == result.move_count - 1

    def test_result_to_row(self):
        coord = GameResult(np.array([1, -1, 0, 0], dtype=np.int8), winner=0, starting_player=1)
        assert result_to_row(coord) == [1, -1, 0, 0, 1, 0]
        text = GameResult("XO  ", winner=1, starting_player=0)
        assert result_to_row(text) == ["XO  ", 0, 1]


class TestGenerateDataset:
    def test_coord_dataset(self, tmp_path):
        config = small_config(tmp_path)
        summary = generate_dataset(config, 3, timestamp="120000")

        assert summary.dataset_file == os.path.join(config.data_dir, "3x3_20_coord_120000_0.csv")
        data = pd.read_csv(summary.dataset_file)
        assert len(data) == 20
        assert list(data.columns) == [f"cell{i}_{j}" for i in range(3) for j in range(3)] + ["starting_player", "winner"]
        assert set(data["winner"]) <= {0, 1}
        assert data.drop(columns=["starting_player", "winner"]).isin([-1, 0, 1]).all().all()

        assert summary.stats.total_games == 20
        assert summary.stats.wins_player_x + summary.stats.wins_player_o == 20
        assert 1 <= summary.stats.unique_games <= 20

    def test_metadata_file(self, tmp_path):
        config = small_config(tmp_path, moves_before_end=1)
        summary = generate_dataset(config, 3, timestamp="120000")

        assert summary.metadata_file == os.path.join(config.metadata_dir, "metadata_3x3_20_coord_120000_1.csv")
        metadata = pd.read_csv(summary.metadata_file)
        row = metadata.iloc[0]
        assert row["Filename"] == "3x3_20_coord_120000_1.csv"
        assert row["Board Dimension"] == "3x3"
        assert row["Total Games"] == 20
        assert row["Unique Games"] == summary.stats.unique_games
        assert row["Player X Wins"] + row["Player O Wins"] == 20
        assert row["Format"] == "coord"
        assert row["Moves Before End"] == 1
        groups = re.findall(r"\{(\d+)\}", row["Removed Moves"])
        assert len(groups) == 20

    def test_string_dataset(self, tmp_path):
        config = small_config(tmp_path, format="string")
        summary = generate_dataset(config, 4, timestamp="120000")

        data = pd.read_csv(summary.dataset_file, dtype={"board": str}, keep_default_na=False)
        assert list(data.columns) == ["board", "starting_player", "winner"]
        assert len(data) == 20
        assert all(len(board) == 16 and set(board) <= {"X", "O", " "} for board in data["board"])
        assert summary.stats.total_games == 20

    def test_same_seed_same_file(self, tmp_path):
        first = generate_dataset(small_config(tmp_path / "a"), 4, timestamp="1")
        second = generate_dataset(small_config(tmp_path / "b"), 4, timestamp="1")
        with open(first.dataset_file) as a, open(second.dataset_file) as b:
            assert a.read() == b.read()

    def test_generate_datasets_sweeps_sizes(self, tmp_path):
        config = small_config(tmp_path, total_games=5, min_board_dim=3, max_board_dim=5)
        summaries = generate_datasets(config)
        assert [summary.board_dim for summary in summaries] == [3, 4, 5]
        for summary in summaries:
            assert os.path.exists(summary.dataset_file)
            assert os.path.exists(summary.metadata_file)
            assert summary.stats.total_games == 5

    def test_generate_datasets_in_worker_processes(self, tmp_path):
        config = small_config(tmp_path, total_games=5, min_board_dim=3, max_board_dim=4, workers=2)
        summaries = generate_datasets(config)
        assert sorted(summary.board_dim for summary in summaries) == [3, 4]
        assert all(summary.stats.total_games == 5 for summary in summaries)

    def test_worker_processes_get_log_level(self, tmp_path, monkeypatch, caplog):
        created = {}

        class RecordingPool:
            def __init__(self, processes, initializer=None, initargs=()):
                created.update(processes=processes, initializer=initializer, initargs=initargs)

            def __enter__(self):
                return self

            def __exit__(self, *exc):
                return False

            def starmap(self, function, args):
                return [function(*item) for item in args]

        monkeypatch.setattr("generate_hex_games.hex_generator.Pool", RecordingPool)
        caplog.set_level(logging.DEBUG)

        config = small_config(tmp_path, total_games=2, min_board_dim=3, max_board_dim=4, workers=2)
        generate_datasets(config)

        assert created == {
            "processes": 2, "initializer": configure_worker_logging, "initargs": (logging.DEBUG,),
        }

    def test_configure_worker_logging(self, monkeypatch, caplog):
        # A spawned worker starts with a bare root logger
        monkeypatch.setattr(logging.root, "handlers", [])
        caplog.set_level(logging.WARNING)

        configure_worker_logging(logging.INFO)

        assert logging.root.level == logging.INFO
        assert len(logging.root.handlers) == 1
        assert isinstance(logging.root.handlers[0], logging.StreamHandler)
        assert logging.root.handlers[0].formatter._fmt == LOG_FORMAT

        configure_worker_logging(logging.DEBUG)
        assert len(logging.root.handlers) == 1
        assert logging.root.level == logging.DEBUG


class TestMetadata:
    def test_timestamps(self):
        assert re.fullmatch(r"\d{6}", generate_timestamp())
        assert re.fullmatch(r"\d{8}:\d{6}\.\d{3}", generate_timestamp(detailed=True))

    def test_filenames(self):
        assert dataset_filename(7, 1000, "coord", "101010", 2) == "7x7_1000_coord_101010_2.csv"
        assert metadata_filename("data/7x7_1000_coord_101010_2.csv") == "metadata_7x7_1000_coord_101010_2.csv"

    def test_ensure_directory_exists(self, tmp_path):
        directory = str(tmp_path / "out")
        assert ensure_directory_exists(directory) is True
        assert os.path.isdir(directory)
        assert ensure_directory_exists(directory) is False

    def test_format_removed_moves(self):
        assert format_removed_moves([[1, 2], [3], []]) == "{{1,2},{3},{}}"
        assert format_removed_moves([]) == "{}"

    def test_analyze_counts_unique_boards(self, tmp_path):
        path = tmp_path / "games.csv"
        path.write_text(
            "cell0_0,cell0_1,cell1_0,cell1_1,starting_player,winner\n"
            "1,0,1,-1,0,0\n"
            "1,0,1,-1,1,0\n"
            "-1,-1,1,0,1,1\n"
        )
        assert analyze_game_file(str(path), "coord") == DatasetStats(3, 2, 2, 1)

    def test_analyze_string_format(self, tmp_path):
        path = tmp_path / "games.csv"
        path.write_text("board,starting_player,winner\nXX O,0,0\n OOX,1,1\nXX O,1,0\n")
        assert analyze_game_file(str(path), "string") == DatasetStats(3, 2, 2, 1)

    def test_analyze_missing_file(self, tmp_path):
        assert analyze_game_file(str(tmp_path / "missing.csv"), "coord") == DatasetStats()
