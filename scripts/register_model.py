"""
Register or update a chat model config in design_search.db.

Examples:
  python3 scripts/register_model.py --name nano-banana --model gemini-2.5-flash-image
  python3 scripts/register_model.py --name custom --model my-model --base-url https://proxy.example --api-key KEY
  python3 scripts/register_model.py --name old --model old-model --disabled
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Iterable

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from design_search.database import init_db
from design_search.model_service import upsert_model_config
from design_search.models import ModelConfig


def _parse_args(argv: Iterable[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Register a chat model config")
    parser.add_argument("--name", required=True, help="Display name, also accepted by /ai/chat")
    parser.add_argument("--model", required=True, help="Upstream model id")
    parser.add_argument("--adapter", default="gemini image")
    parser.add_argument("--provider", default="google")
    parser.add_argument("--base-url", default="", help="Override GEMINI_BASE_URL for this model")
    parser.add_argument("--api-key", default="", help="Override GEMINI_API_KEY for this model")
    parser.add_argument("--description", default="")
    parser.add_argument("--disabled", action="store_true")
    return parser.parse_args(list(argv))


def main(argv: Iterable[str]) -> int:
    args = _parse_args(argv)
    init_db()
    upsert_model_config(ModelConfig(
        name=args.name.strip(),
        model=args.model.strip(),
        adapter=args.adapter,
        provider=args.provider,
        base_url=args.base_url.strip(),
        api_key=args.api_key.strip(),
        description=args.description,
        enabled=not args.disabled,
    ))
    print(f"Done. name={args.name} model={args.model} enabled={not args.disabled}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
