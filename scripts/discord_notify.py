#!/usr/bin/env python3
"""Post a message file to a Discord webhook as an embed."""

import argparse
import functools
import json
import sys
from typing import NamedTuple

import requests

print = functools.partial(print, flush=True)

CONTENT_TYPE = "application/json"
REQUEST_TIMEOUT = 30
MAX_COLOR = 0xFFFFFFFF


# --- Errors ---

class NotifyError(Exception):
    message = "notification failed"

    def __str__(self) -> str:
        return self.message


class TokenNotFound(NotifyError):
    def __init__(self, path: str):
        super().__init__(path)
        self.path = path

    def __str__(self) -> str:
        return f"could not find the token file at {self.path}"


class TokenInvalid(NotifyError):
    message = "could not read the token from token file"


class MessageNotFound(NotifyError):
    def __init__(self, path: str):
        super().__init__(path)
        self.path = path

    def __str__(self) -> str:
        return f"could not find the message file at {self.path}"


class MessageInvalid(NotifyError):
    message = "could not parse the message"


class MessageSendError(NotifyError):
    message = "could not send the message"


# --- Loading ---

class Message(NamedTuple):
    header: str
    content: str
    color: int


def load_hook(path: str) -> str:
    """Read the webhook URL file. Whitespace is left for the caller to strip."""
    try:
        f = open(path, encoding="utf-8")
    except OSError as e:
        raise TokenNotFound(path) from e
    with f:
        try:
            return f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise TokenInvalid() from e


def _reject_duplicate_keys(pairs: list[tuple[str, object]]) -> dict:
    obj = {}
    for key, value in pairs:
        if key in obj:
            raise ValueError(f"duplicate field `{key}`")
        obj[key] = value
    return obj


def parse_message(text: str) -> Message:
    """Decode a message document.

    Extra keys are ignored. ``color`` has to be a JSON integer that fits in
    32 unsigned bits; floats and booleans are refused.
    """
    data = json.loads(text, object_pairs_hook=_reject_duplicate_keys)
    if not isinstance(data, dict):
        raise ValueError("expected a JSON object")
    for field in Message._fields:
        if field not in data:
            raise ValueError(f"missing field `{field}`")
    header, content, color = data["header"], data["content"], data["color"]
    if not isinstance(header, str):
        raise ValueError("`header` must be a string")
    if not isinstance(content, str):
        raise ValueError("`content` must be a string")
    for name, value in (("header", header), ("content", content)):
        try:
            value.encode("utf-8")
        except UnicodeEncodeError:
            raise ValueError(f"`{name}` contains a lone surrogate") from None
    if isinstance(color, bool) or not isinstance(color, int):
        raise ValueError("`color` must be an unsigned integer")
    if not 0 <= color <= MAX_COLOR:
        raise ValueError(f"`color` out of range: {color}")
    return Message(header, content, color)


def load_message(path: str) -> Message:
    try:
        f = open(path, encoding="utf-8")
    except OSError as e:
        raise MessageNotFound(path) from e
    with f:
        try:
            return parse_message(f.read())
        except (OSError, ValueError) as e:
            # JSONDecodeError and UnicodeDecodeError are both ValueErrors.
            raise MessageInvalid() from e


# --- Sending ---

def format_payload(message: Message) -> str:
    embed = {
        "title": message.header,
        "description": message.content,
        "color": message.color,
    }
    return json.dumps({"embeds": [embed]}, separators=(",", ":"), ensure_ascii=False)


def send_message(hook: str, body: str) -> requests.Response:
    """POST the body to the webhook. Any HTTP status counts as sent."""
    try:
        with requests.Session() as session:
            return session.post(
                hook.strip(),
                data=body.encode("utf-8"),
                headers={"content-type": CONTENT_TYPE},
                timeout=REQUEST_TIMEOUT,
            )
    except requests.RequestException:
        raise MessageSendError() from None


def format_response(response: requests.Response) -> str:
    headers = ", ".join(f'"{k}": "{v}"' for k, v in response.headers.items())
    return f'Response {{ url: "{response.url}", status: {response.status_code}, headers: {{{headers}}} }}'


# --- CLI ---

def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Send a message file to a Discord webhook")
    parser.add_argument("hook_file", help="Path to the file with a discord webhook.")
    parser.add_argument("message", help="File with the message to send.")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None):
    args = parse_args(argv)
    try:
        hook = load_hook(args.hook_file)
        message = load_message(args.message)
        response = send_message(hook, format_payload(message))
    except NotifyError as e:
        cause = f": {e.__cause__}" if e.__cause__ is not None else ""
        print(f"ERROR: {e}{cause}", file=sys.stderr)
        sys.exit(1)
    print(format_response(response))


if __name__ == "__main__":
    main()
