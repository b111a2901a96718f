from __future__ import annotations

import argparse
from pathlib import Path
import sys

sys.path.append(str(Path(__file__).resolve().parents[1]))

from geny.core.config import get_settings
from geny.core.exceptions import ConfigUnavailable, ValidationError
from geny.store import build_prompt_store


def main() -> None:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Overwrite the Geny system prompt in system_config")
    parser.add_argument("path", help="Text file with the new prompt ('-' reads stdin)")
    parser.add_argument(
        "--key",
        default=settings.prompt_key,
        help="Configuration key to write",
    )
    args = parser.parse_args()

    if args.path == "-":
        text = sys.stdin.read()
    else:
        text = Path(args.path).read_text(encoding="utf-8")

    settings.validate(model=False)
    store = build_prompt_store(settings)
    store.key = args.key

    try:
        prompt = store.save(text)
    except (ValidationError, ConfigUnavailable) as exc:
        print(f"Failed to save prompt: {exc}", file=sys.stderr)
        sys.exit(1)

    print(f"Saved prompt '{args.key}' ({len(prompt.text)} chars)")


if __name__ == "__main__":
    main()
