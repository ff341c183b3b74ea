"""CLI entry point for configuration introspection.

Usage:
    python -m gemini_guard.config
    python -m gemini_guard.config --check
    python -m gemini_guard.config --json
"""

import argparse
import json
import sys
from typing import Any

from gemini_guard.exceptions import ConfigurationError

from .api import resolve_config
from .audit import summarize_origins
from .types import ResolvedConfig

# ruff: noqa: T201


def _warnings(resolved: ResolvedConfig) -> list[str]:
    warnings = []
    if not resolved.api_key:
        warnings.append("No API key configured - only the mock adapter will work")
    if resolved.min_sources == 0:
        warnings.append("min_sources is 0 - responses without sources are accepted")
    if resolved.candidate_cache_ttl == 0:
        warnings.append("candidate_cache_ttl is 0 - the corpus reloads on every check")
    return warnings


def config_info(resolved: ResolvedConfig) -> dict[str, Any]:
    frozen = resolved.to_frozen()
    values = {
        field: getattr(frozen, field)
        for field in resolved._fields
        if field not in ("origin", "api_key")
    }
    values["model_fallbacks"] = list(frozen.model_fallbacks)
    values["has_api_key"] = frozen.api_key is not None
    return {
        "status": "valid",
        "config": values,
        "model_queue": list(frozen.model_queue()),
        "sources": dict(resolved.origin),
        "source_counts": summarize_origins(resolved.origin),
        "warnings": _warnings(resolved),
    }


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Inspect gemini-guard configuration",
        prog="python -m gemini_guard.config",
    )
    parser.add_argument("--profile", help="Configuration profile to use")
    parser.add_argument("--env-file", help="Load this .env file first")
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output as JSON instead of human-readable format",
    )
    parser.add_argument(
        "--check",
        action="store_true",
        help="Only check that configuration is valid (exit code 0=valid, 1=invalid)",
    )
    args = parser.parse_args(argv)

    try:
        resolved = resolve_config(profile=args.profile, use_env_file=args.env_file)
    except ConfigurationError as e:
        if args.json:
            print(json.dumps({"status": "invalid", "error": str(e)}, indent=2))
        elif not args.check:
            print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    if args.check:
        return 0
    if args.json:
        print(json.dumps(config_info(resolved), indent=2))
        return 0

    print("=== Effective Configuration ===")
    print(resolved.audit())
    print(f"\nModel queue: {', '.join(resolved.to_frozen().model_queue())}")
    for warning in _warnings(resolved):
        print(f"warning: {warning}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
