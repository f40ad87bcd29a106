from awsso.cli.app import cli


def main():
    """Entry point for the awsso CLI. Delegates to awsso.cli.app:cli."""
    cli(obj={})


if __name__ == "__main__":
    main()
