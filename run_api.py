"""
API entrypoint.

Operator notes:
- This file should remain extremely small and boring.
- Runtime configuration is read from the environment (or .env) by
  influence_dashboard.config.
- If this file crashes, the error should be immediately obvious to the operator.
"""

import logging
import sys

from influence_dashboard.main import run


def main() -> None:
    try:
        run()
    except Exception:
        logging.basicConfig(level=logging.ERROR)
        logging.exception("API failed to start.")
        print("\nAPI failed to start.")
        print("   See error above. Most common causes:")
        print("   - Database path/URL invalid (DATABASE_URL or DB_PATH)")
        print("   - Port already in use (PORT)")
        print("   - Relation store unreachable at startup (table creation)\n")
        sys.exit(1)


if __name__ == "__main__":
    main()
