from ananke.cli.main import app


def main():
    """Main entry point for the ``ananke`` command."""
    app()


if __name__ == "__main__":
    main()
