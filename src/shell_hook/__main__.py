"""shell-hook CLI bootstrap."""

from shell_hook.cli.app import app


def main() -> None:
    app(prog_name="shell-hook")


if __name__ == "__main__":
    main()
