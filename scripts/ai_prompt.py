#!/usr/bin/env python3
"""
Send one AI request through the prompt dispatcher from the command line.

Uses the same settings as the service (AI_GATEWAY_API_KEY / LOVABLE_API_KEY,
AI_GATEWAY_URL, AI_MODEL, ...), so it is a quick way to check a template
or a credential without running the HTTP app.

Usage:
    # Free-form chat
    python scripts/ai_prompt.py chat --prompt "How do I get more Instagram followers?"

    # Hashtags
    python scripts/ai_prompt.py hashtags --prompt "vegan bakery"

    # Lead scoring with a payload, parsed into structured data
    python scripts/ai_prompt.py lead_score --structured \\
        --payload '{"leadData": {"name": "Ana", "company": "Acme", "source": "instagram", "value": 5000}}'

    # Only print the rendered prompts (no network call)
    python scripts/ai_prompt.py content --payload '{"postData": {"topic": "spring sale", "platform": "tiktok"}}' --dry-run

Output:
    {"content": "...", "kind": "..."}
"""
import argparse
import asyncio
import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from pydantic import ValidationError  # noqa: E402

from bizpilot.core.dispatch import DispatchError, DispatchRequest, get_dispatcher, render_prompts  # noqa: E402


def build_request(kind: str, prompt: str | None, payload: str | None) -> DispatchRequest:
    """Merge --payload JSON with kind/prompt into a DispatchRequest."""
    body = json.loads(payload) if payload else {}
    if not isinstance(body, dict):
        raise ValueError("--payload must be a JSON object")
    body["kind"] = kind
    if prompt:
        body["prompt"] = prompt
    return DispatchRequest.model_validate(body)


async def run(request: DispatchRequest, structured: bool) -> dict:
    dispatcher = get_dispatcher()
    if structured:
        result, data = await dispatcher.dispatch_structured(request)
        return {**result.model_dump(), "data": data.model_dump()}
    result = await dispatcher.dispatch(request)
    return result.model_dump()


def main():
    parser = argparse.ArgumentParser(
        description="Send one AI request through the prompt dispatcher",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )
    parser.add_argument("kind", help="Request kind (content, hashtags, lead_score, ..., chat)")
    parser.add_argument("--prompt", "-p", help="Free-text prompt")
    parser.add_argument("--payload", "-d", help="JSON object with payload fields, e.g. '{\"leadData\": {...}}'")
    parser.add_argument("--structured", "-s", action="store_true", help="Parse the JSON reply for structured kinds")
    parser.add_argument("--dry-run", action="store_true", help="Print the rendered prompts and exit")

    args = parser.parse_args()

    try:
        request = build_request(args.kind, args.prompt, args.payload)
    except (ValueError, ValidationError) as exc:
        print(f"Error: invalid request: {exc}", file=sys.stderr)
        sys.exit(2)

    if args.dry_run:
        prompts = render_prompts(request)
        print(json.dumps({"system": prompts.system, "user": prompts.user}, indent=2, ensure_ascii=False))
        return

    try:
        output = asyncio.run(run(request, args.structured))
    except DispatchError as exc:
        print(f"Error ({exc.status_code}): {exc.detail}", file=sys.stderr)
        sys.exit(1)

    print(json.dumps(output, indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
