"""Command-line entry point for inspecting, converting and serving levels."""

from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Sequence

import uvicorn

from izombie import (
    Clone,
    LevelCodecError,
    decode_bytes,
    decode_string,
    detect_file_format,
    detect_string_format,
    encode,
    encode_to_string,
    validate,
)
from izombie.api.settings import LevelApiSettings
from izombie.decode import LevelFormat
from izombie.logging_setup import configure_logging
from izombie.thumbnail import extract_thumbnail

# Leading characters of the textual forms; anything else is read as a file.
_TEXT_PREFIXES = (b"|", b"=", b"eJ")


def _read_level(path: Path) -> tuple[LevelFormat, Clone]:
    """Return the detected format and decoded level stored at ``path``."""

    data = path.read_bytes()
    if data.startswith(_TEXT_PREFIXES):
        text = data.decode("utf-8").strip()
        return detect_string_format(text), decode_string(text)
    return detect_file_format(data), decode_bytes(data)


def _load_or_exit(path: Path) -> tuple[LevelFormat, Clone]:
    try:
        return _read_level(path)
    except OSError as exc:
        print(f"Failed to read '{path}': {exc}")
        raise SystemExit(2) from exc
    except (LevelCodecError, UnicodeDecodeError) as exc:
        print(f"Failed to decode '{path}': {exc}")
        raise SystemExit(2) from exc


def _command_info(args: argparse.Namespace) -> None:
    level_format, clone = _load_or_exit(args.path)
    plants = clone.plants or []
    print(f"Format: {level_format.name}")
    print(f"Name: {clone.name}")
    print(f"Sun: {clone.sun}")
    print(f"Music: {clone.music}")
    print(f"Stripe column: {clone.stripe_col}")
    print(f"Flags: {clone.lf_value}")
    print(f"Water: {'yes' if clone.is_water else 'no'}")
    print(f"Plants: {len(plants)}")
    if clone.selected_zombies:
        print(f"Zombies: {', '.join(map(str, clone.selected_zombies))}")
    if args.json:
        payload = clone.to_payload()
        payload.pop("screenshot", None)
        payload["thumbnail"] = extract_thumbnail(clone)
        print(json.dumps(payload, indent=2, default=str))


def _command_validate(args: argparse.Namespace) -> None:
    _, clone = _load_or_exit(args.path)
    ok, reason = validate(clone)
    if not ok:
        print(f"Invalid: {reason}")
        raise SystemExit(1)
    print("Valid")


def _command_convert(args: argparse.Namespace) -> None:
    _, clone = _load_or_exit(args.path)
    try:
        if args.string:
            args.output.write_text(encode_to_string(clone) + "\n", encoding="utf-8")
        else:
            args.output.write_bytes(encode(clone))
    except LevelCodecError as exc:
        print(f"Failed to encode '{args.path}': {exc}")
        raise SystemExit(2) from exc
    print(f"Wrote IZL3 level to '{args.output}'.")


def _command_serve(args: argparse.Namespace) -> None:
    settings = LevelApiSettings.from_env()
    uvicorn.run(
        "izombie.api.app:create_app",
        factory=True,
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=settings.log_level.lower(),
    )


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="I, Zombie level tools")
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level name (default: IZOMBIE_LOG_LEVEL or INFO).",
    )
    subcommands = parser.add_subparsers(dest="command", required=True)

    info = subcommands.add_parser("info", help="Summarise a level file.")
    info.add_argument("path", type=Path)
    info.add_argument(
        "--json",
        action="store_true",
        help="Also print the decoded level as JSON (screenshot omitted).",
    )
    info.set_defaults(handler=_command_info)

    check = subcommands.add_parser(
        "validate", help="Check a level against the publication rules."
    )
    check.add_argument("path", type=Path)
    check.set_defaults(handler=_command_validate)

    convert = subcommands.add_parser(
        "convert", help="Re-encode a level of any generation as IZL3."
    )
    convert.add_argument("path", type=Path)
    convert.add_argument("output", type=Path)
    convert.add_argument(
        "--string",
        action="store_true",
        help="Write the '|'-prefixed string form instead of the binary file.",
    )
    convert.set_defaults(handler=_command_convert)

    serve = subcommands.add_parser("serve", help="Run the level sharing API.")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.add_argument(
        "--reload",
        action="store_true",
        help="Restart the server when source files change.",
    )
    serve.set_defaults(handler=_command_serve)

    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> None:
    """Run one of the level tool subcommands."""

    args = _parse_args(argv)
    level = args.log_level
    if level is None:
        try:
            level = LevelApiSettings.from_env().log_level
        except ValueError as exc:
            print(f"Invalid configuration: {exc}")
            raise SystemExit(2) from exc
    try:
        configure_logging(level)
    except ValueError as exc:
        print(str(exc))
        raise SystemExit(2) from exc

    args.handler(args)


if __name__ == "__main__":
    main()
