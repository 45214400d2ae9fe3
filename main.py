import argparse
import logging
from dataclasses import fields

from generate_hex_games.hex_generator import FORMATS, LOG_FORMAT, GeneratorConfig, generate_datasets
from generate_hex_games.hex_metadata import analyze_game_file
from hex_dataset.hex_dataset_loader import HexDataLoader
from hex_dataset.visualize_hex_board import visualize_hex_board

log = logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Generate and inspect random Hex game datasets")
    parser.add_argument("--log-level", default="INFO", help="Logging level (DEBUG, INFO, WARNING, ...)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    defaults = GeneratorConfig()
    generate = subparsers.add_parser("generate", help="Simulate random games and write CSV datasets.")
    generate.add_argument("--total-games", default=defaults.total_games, type=int, help="Games per board size.")
    generate.add_argument("--batch-size", default=None, type=int, help="Games held in memory before writing (default: all).")
    generate.add_argument("--min-board-dim", default=defaults.min_board_dim, type=int, help="Smallest board size.")
    generate.add_argument("--max-board-dim", default=defaults.max_board_dim, type=int, help="Largest board size.")
    generate.add_argument("--format", default=defaults.format, choices=FORMATS, help="CSV layout.")
    generate.add_argument("--moves-before-end", default=defaults.moves_before_end, type=int,
                          help="Moves to take back from each finished game before saving it.")
    generate.add_argument("--fixed-start-player", dest="random_start_player", action="store_false",
                          help="Always let X (player 0) move first.")
    generate.add_argument("--seed", default=defaults.seed, type=int, help="Seed for reproducible datasets.")
    generate.add_argument("--workers", default=defaults.workers, type=int, help="Processes, one board size each.")
    generate.add_argument("--data-dir", default=defaults.data_dir, help="Directory for the datasets.")
    generate.add_argument("--metadata-dir", default=defaults.metadata_dir, help="Directory for the metadata files.")

    analyze = subparsers.add_parser("analyze", help="Print statistics of a generated dataset.")
    analyze.add_argument("data_file")
    analyze.add_argument("--format", default="coord", choices=FORMATS)

    show = subparsers.add_parser("show", help="Draw a random board from a generated dataset.")
    show.add_argument("data_file")
    show.add_argument("--board-size", required=True, type=int)
    show.add_argument("--format", default="coord", choices=FORMATS)
    show.add_argument("--samples-per-class", default=10, type=int)
    show.add_argument("--output", default="hex_board.png")

    return parser.parse_args(argv)


def config_from_args(args):
    names = {f.name for f in fields(GeneratorConfig)}
    return GeneratorConfig(**{key: value for key, value in vars(args).items() if key in names})


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(
        level=args.log_level.upper(),
        format=LOG_FORMAT,
    )

    if args.command == "generate":
        for summary in generate_datasets(config_from_args(args)):
            log.info(f"{summary.dataset_file} ({summary.stats.total_games} games)")

    elif args.command == "analyze":
        stats = analyze_game_file(args.data_file, args.format)
        print(f"Total games: {stats.total_games}")
        print(f"Unique games: {stats.unique_games}")
        print(f"Player X wins: {stats.wins_player_x}")
        print(f"Player O wins: {stats.wins_player_o}")

    elif args.command == "show":
        data_loader = HexDataLoader(args.data_file, board_size=args.board_size, format=args.format)
        data_loader.load_data(desired_samples_per_class=args.samples_per_class)

        board_state, winner = data_loader.get_random_entry()
        print(f'Winner of this game: {"X" if winner == 0 else "O"}')
        visualize_hex_board(board_state, board_size=data_loader.board_size, output_file=args.output)


if __name__ == '__main__':
    main()
