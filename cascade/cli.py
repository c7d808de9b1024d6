from __future__ import annotations

import argparse
import logging
import sys

from .history import History
from .llm_interaction.adapter import LLMAdapter
from .llm_interaction.client import LlamaClient
from .llm_interaction.config import ApiConfig
from .llm_interaction.errors import LLMError
from .prompt_texts import REASON_SYSTEM_PROMPT
from .reason import PRIMITIVE_PARSERS, ReasonFlow
from .request import LLMRequest


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Answer a question with a think-then-answer round.")
    parser.add_argument("question", help="Question to reason about")
    parser.add_argument(
        "--primitive",
        choices=sorted(PRIMITIVE_PARSERS),
        default="text",
        help="Shape of the final answer",
    )
    parser.add_argument("--host", help="Completion server host (defaults to LLAMA_HOST env or localhost)")
    parser.add_argument("--port", type=int, help="Completion server port (defaults to LLAMA_PORT env or 8080)")
    parser.add_argument("--retries", type=int, default=2, help="Whole-round re-runs after a failure")
    parser.add_argument("--max-elapsed", type=float, default=60.0, help="Rate-limit retry budget in seconds")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging and dump the round")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    overrides = {}
    if args.host:
        overrides["host"] = args.host
    if args.port:
        overrides["port"] = args.port
    config = ApiConfig.from_env(**overrides)

    with LlamaClient(config) as client:
        client.backoff.max_elapsed_time = args.max_elapsed
        request = LLMRequest(
            adapter=LLMAdapter(client),
            history=History(),
            system_prompt=REASON_SYSTEM_PROMPT,
        )
        flow = ReasonFlow(args.question, primitive=args.primitive, retry_after_fail=args.retries)

        try:
            result = flow.run(request)
        except LLMError as exc:
            print(f"[Error] {exc}", file=sys.stderr)
            if args.verbose:
                print(flow.round)
            return 1

    if args.verbose:
        print(flow.round)
        print(f"\n--- History ---\n{request.history.as_text()}")
    print(f"\n{flow.round.display_outcome()}\n")
    print(f"[Answer] {result}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
