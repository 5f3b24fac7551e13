"""Command-line interface."""
import argparse

from himalayanatlas.main import main


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="himalayanatlas",
        description="Interactive 3D atlas of Himalayan mountaineering expeditions.",
    )
    parser.add_argument("--data-dir", default=None,
                        help="Directory with the expedition sources and terrain files.")
    parser.add_argument("--log-level", default="INFO",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])
    parser.add_argument("--log-file", default=None, help="Also write logs to this file.")
    return parser.parse_args(argv)


def cli(argv=None) -> None:
    args = parse_args(argv)
    main(data_dir=args.data_dir, log_level=args.log_level, log_file=args.log_file)


if __name__ == "__main__":
    cli()
