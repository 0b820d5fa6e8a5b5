"""
Rule Set Validator - Checks a pricing rule-set file before it goes live.

Usage:
    python -m inox_pricing.rules.validate_rules [path/to/pricing.json]
"""
import sys
from pathlib import Path
from typing import Optional

from ..config.settings import get_settings
from ..errors import ConfigError
from .rule_set_loader import RuleSetProvider


def validate_file(path: Path, verbose: bool = True) -> tuple[bool, Optional[str], list[str]]:
    """
    Validate a rule-set file.

    Returns (success, fingerprint, errors).
    """
    provider = RuleSetProvider(path)
    try:
        loaded = provider.snapshot()
    except ConfigError as e:
        if verbose:
            print("Validation errors:")
            print(f"  ❌ {e.message}")
        return False, None, [e.message]

    if verbose:
        rule_set = loaded.rule_set
        print(f"✅ {path} is valid")
        print(f"   Dimensions: {len(rule_set.dimension_base)}")
        print(f"   Fingerprint: {loaded.fingerprint}")
    return True, loaded.fingerprint, []


def main(argv: Optional[list[str]] = None) -> int:
    """CLI entry point."""
    args = sys.argv[1:] if argv is None else argv
    path = Path(args[0]) if args else get_settings().pricing_config

    print(f"Validating pricing config {path}...")
    success, _, errors = validate_file(path)
    if not success:
        print(f"\n❌ Validation failed with {len(errors)} error(s)")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
