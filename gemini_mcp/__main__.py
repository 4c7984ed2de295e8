import sys

from gemini_mcp.api.service import main

if __name__ == "__main__":
    sys.exit(main())
