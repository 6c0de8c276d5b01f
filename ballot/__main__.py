from ballot.cli.ballot_cli import _parse_cli_args

if __name__ == "__main__":
    _parse_cli_args()
