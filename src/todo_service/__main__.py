"""Entry point for ``python -m todo_service``."""

from todo_service.cli import main

if __name__ == "__main__":
    main()
