"""Allow `python -m dify_sync`."""

from dify_sync.cli import main

if __name__ == "__main__":
    main()
