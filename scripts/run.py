#!/usr/bin/env python3
"""Grant Analyzer — Application Runner.

Performs pre-flight checks and launches the streaming server.

Usage:
    python scripts/run.py
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

REQUIRED_ENV_VARS = [
    "GRANTWATCH_USERNAME",
    "GRANTWATCH_PASSWORD",
    "OPENAI_BASE_URL",
    "OPENAI_API_KEY",
    "OPENAI_MODEL",
]

# Values that are visibly not secrets and may be echoed in full
_PUBLIC_ENV_VARS = {"OPENAI_BASE_URL", "OPENAI_MODEL"}

REQUIRED_FILES = [
    "config/settings.yaml",
]


def preflight_checks() -> bool:
    """Run pre-flight checks before starting the server.

    Checks:
      - .env file exists (loaded if present)
      - Required environment variables are set
      - Required config files exist
      - logs/ directory exists (creates it)

    Returns:
        True if all checks pass, False otherwise.
    """
    os.chdir(str(PROJECT_ROOT))
    ok = True

    env_path = PROJECT_ROOT / ".env"
    if not env_path.exists():
        print("⚠️  .env file not found, relying on the shell environment")
        print("   Copy .env.example to .env and fill in your secrets.")
    else:
        from dotenv import load_dotenv
        load_dotenv(env_path)
        print("✅ .env loaded")

    for var in REQUIRED_ENV_VARS:
        val = os.environ.get(var, "")
        if not val or val in ("your_key_here", "your_password_here"):
            print(f"❌ {var} not set or invalid")
            ok = False
        elif var in _PUBLIC_ENV_VARS:
            print(f"✅ {var} = {val}")
        else:
            print(f"✅ {var} is set")

    for f in REQUIRED_FILES:
        if not (PROJECT_ROOT / f).exists():
            print(f"❌ {f} not found!")
            ok = False
        else:
            print(f"✅ {f} exists")

    (PROJECT_ROOT / "logs").mkdir(exist_ok=True)
    print("✅ logs/ directory ready")

    return ok


def main() -> None:
    """Entry point: run checks then start the server."""
    print("═══ Pre-flight Checks ═══\n")
    if not preflight_checks():
        print("\n❌ Pre-flight checks failed! Fix the issues above and try again.")
        sys.exit(1)

    print("\n✅ All checks passed!\n")
    print("═══ Starting Grant Analyzer ═══\n")

    from grant_analyzer.main import main as app_main
    app_main()


if __name__ == "__main__":
    main()
