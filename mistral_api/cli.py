"""
Demonstration request runner for the Mistral AI client.

Usage:
    python -m mistral_api.cli <operation> [PARAMS_JSON] [OPTIONS_JSON]

Request lifecycle:
1. Resolve the operation in the endpoint registry.
2. Route the first JSON object to path parameters when the endpoint path has
   placeholders, otherwise to options; a second object is always options.
3. Streaming calls (`"stream": true`, or an inherently streaming endpoint)
   print each frame's text delta as it arrives.
4. Buffered calls pretty-print JSON responses and pass other content through.

Error handling strategy:
- Client errors print `Error: <message>` and exit with status 1.
- Keyboard interrupts end the run without traceback output.
"""

from dotenv import load_dotenv

load_dotenv()

import json
import sys

from mistral_api.client import create_client
from mistral_api.core import endpoints
from mistral_api.core.errors import MistralAIError


USAGE = "Usage: python -m mistral_api.cli <operation> [PARAMS_JSON] [OPTIONS_JSON]"


# =========================================================
# OUTPUT HELPERS
# =========================================================

def frame_text(frame):
    """Extract printable text from the common frame shapes."""
    if not isinstance(frame, dict):
        return None

    choices = frame.get("choices")
    if choices:
        delta = choices[0].get("delta") or {}
        content = delta.get("content")
        if isinstance(content, str):
            return content

    for key in ("text", "content"):
        value = frame.get(key)
        if isinstance(value, str):
            return value

    return None


def print_frame(frame):
    text = frame_text(frame)
    if text:
        print(text, end="", flush=True)


def render_response(response):
    """Pretty-print JSON bodies; write anything else through unchanged."""
    content_type = response.headers.get("Content-Type", "")

    print("============\n| Response |\n============\n")
    if "json" in content_type:
        print(json.dumps(response.json(), indent=4, ensure_ascii=False))
    else:
        sys.stdout.buffer.write(response.content)
        sys.stdout.flush()
    print("\n============")


def parse_json_arg(raw, label):
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValueError(f"{label} is not valid JSON: {e.msg}") from None
    if not isinstance(value, dict):
        raise ValueError(f"{label} must be a JSON object")
    return value


def split_call_arguments(spec, objects):
    """Map CLI JSON objects onto (path parameters, options)."""
    if len(objects) > 1:
        return objects[0], objects[1]
    if not objects:
        return {}, {}
    if spec.has_placeholders:
        return objects[0], {}
    return {}, objects[0]


# =========================================================
# MAIN
# =========================================================

def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv

    if not argv or argv[0] in ("-h", "--help") or len(argv) > 3:
        print(USAGE)
        print("\nOperations:")
        for name in endpoints.ENDPOINTS:
            print(f" - {name}")
        return 0 if argv and argv[0] in ("-h", "--help") else 2

    name = argv[0]

    try:
        spec = endpoints.resolve(name)
        objects = [
            parse_json_arg(raw, label)
            for raw, label in zip(argv[1:], ("PARAMS_JSON", "OPTIONS_JSON"))
        ]
        parameters, options = split_call_arguments(spec, objects)

        client = create_client()
        streaming = spec.is_streaming or options.get("stream") is True

        with client:
            if streaming:
                client.call(name, parameters=parameters, options=options, stream_callback=print_frame)
                print()
            else:
                render_response(client.call(name, parameters=parameters, options=options))

    except (MistralAIError, ValueError) as e:
        print(f"Error: {e}")
        return 1

    except KeyboardInterrupt:
        print("\nOperation cancelled by user.")
        return 130

    return 0


if __name__ == "__main__":
    sys.exit(main())
