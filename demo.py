#!/usr/bin/env python3
"""
awaitless Demo - Find and fix coroutines that only await and return.
"""

import sys

from awaitless import check_file


def main():
    print("╔" + "=" * 78 + "╗")
    print("║" + " " * 27 + "awaitless - RTD001 Demo" + " " * 28 + "║")
    print("╚" + "=" * 78 + "╝")
    print()

    fix = "--fix" in sys.argv[1:]
    print("Checking examples/service.py...")
    print()

    try:
        summary = check_file(
            "examples/service.py",
            verbose=True,
            json_output="awaitless_results.json",
            fix=fix,
            output_dir="fixed" if fix else None
        )

        summary.print_summary()

        sys.exit(0 if summary.flagged == 0 or fix else 1)

    except FileNotFoundError:
        print("❌ Error: examples/service.py not found")
        print()
        print("Please run this script from the repository root:")
        print("  python3 demo.py")
        sys.exit(1)
    except Exception as e:
        print(f"❌ Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
