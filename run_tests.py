#!/usr/bin/env python3
"""
Quick test runner for the qrmenu client.
Usage: python run_tests.py [command]

Commands:
  install  - Install the package with test dependencies
  run      - Run all tests
  quick    - Run tests, stop on first failure
  coverage - Run tests with coverage report (requires pytest-cov)
"""

import subprocess
import sys
import os


def run_cmd(cmd, description=""):
    """Run a command and exit on failure."""
    if description:
        print(f"\n{'='*60}")
        print(f"  {description}")
        print(f"{'='*60}\n")

    result = subprocess.run(cmd, shell=True)
    if result.returncode != 0:
        print(f"\n❌ Failed: {description}")
        sys.exit(1)
    print(f"\n✅ Success: {description}")


def main():
    os.chdir(os.path.dirname(os.path.abspath(__file__)))

    command = sys.argv[1] if len(sys.argv) > 1 else "run"

    if command == "install":
        run_cmd('pip install -e ".[test]"', "Installing qrmenu with test dependencies")

    elif command == "run":
        run_cmd("pytest tests -v", "Running all tests")

    elif command == "quick":
        run_cmd("pytest tests -x -v", "Running tests (stop on first failure)")

    elif command == "coverage":
        run_cmd("pytest tests -v --cov=qrmenu --cov-report=term",
                "Running tests with coverage")

    else:
        print(__doc__)
        sys.exit(1)


if __name__ == "__main__":
    main()
