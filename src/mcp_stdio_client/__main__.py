"""Allow ``python -m mcp_stdio_client``."""

from .cli import main

if __name__ == "__main__":
    main()
