"""Console entry point: speak UCI on stdin/stdout."""

from castle_engine.uci.interface import UCIEngine


def main():
    UCIEngine().run()


if __name__ == "__main__":
    main()
