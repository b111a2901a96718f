from __future__ import annotations

import argparse
from pathlib import Path
import sys

sys.path.append(str(Path(__file__).resolve().parents[1]))

from geny.llm.prompts import SCHEMA_PATH, build_default_prompt


def main() -> None:
    parser = argparse.ArgumentParser(description="Print the built-in Geny system prompt")
    parser.add_argument(
        "--schema",
        default=str(SCHEMA_PATH),
        help="CRM schema YAML used to describe the tables",
    )
    args = parser.parse_args()

    print(build_default_prompt(Path(args.schema)))


if __name__ == "__main__":
    main()
