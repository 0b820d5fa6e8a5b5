#!/usr/bin/env python
"""
Release check - validates the pricing config and runs the pricing tests.

Usage:
    python scripts/validate_config.py [path/to/pricing.json]
"""
import subprocess
import sys
from pathlib import Path

# Add src to path
src_path = Path(__file__).parent.parent / 'src'
sys.path.insert(0, str(src_path))

from inox_pricing.rules.validate_rules import main as validate_main


def main():
    print("=" * 60)
    print("INOX PRICING RELEASE CHECK")
    print("=" * 60)
    print()

    print("[1/2] Validating pricing config...")
    if validate_main(sys.argv[1:]) != 0:
        print("\n❌ CONFIG INVALID")
        sys.exit(1)

    print()
    print("[2/2] Running pricing tests...")
    test_result = subprocess.run(
        [sys.executable, '-m', 'pytest', 'tests/test_pricing_engine.py', 'tests/test_rule_set_loader.py', '-v', '--tb=short'],
        cwd=Path(__file__).parent.parent
    )
    if test_result.returncode != 0:
        print("\n❌ TESTS FAILED")
        sys.exit(1)

    print()
    print("=" * 60)
    print("✅ CHECK COMPLETE")
    print("=" * 60)


if __name__ == "__main__":
    main()
