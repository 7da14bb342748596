"""Command-line interface for serving the API and running lookups locally.

Provides subcommands to start the HTTP server, run the OCR pipeline on
local image files, and resolve pincodes.
"""

import argparse
import json
import sys
from pathlib import Path

import uvicorn

from microapis.api.app import create_app
from microapis.api.dependencies import Services, build_services
from microapis.exceptions import MicroApiError
from microapis.utils.config import AppConfig, load_config
from microapis.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)


def ocr_files(
    services: Services,
    files: list[Path],
    languages: str | None = None,
    basic: bool = False,
) -> list[dict[str, object]]:
    """Run text extraction over local files.

    Args:
        services: Wired service container.
        files: Image or PDF paths.
        languages: ``+``-separated language codes for the full pipeline.
        basic: Use the single-pass extractor instead of the full pipeline.

    Returns:
        One result dictionary per file, with an ``error`` key on failure.
    """
    results: list[dict[str, object]] = []
    for path in files:
        try:
            buffer = path.read_bytes()
            if basic:
                result: dict[str, object] = {"text": services.processor.extract_basic(buffer)}
            else:
                result = services.processor.process(buffer, languages).to_dict()
            results.append({"filename": path.name, **result})
        except (MicroApiError, OSError) as exc:
            logger.error("Failed to process %s: %s", path.name, exc)
            message = exc.message if isinstance(exc, MicroApiError) else str(exc)
            results.append({"filename": path.name, "error": message})
    return results


def lookup_pincode(services: Services, pincode: str) -> dict[str, object]:
    """Resolve a pincode, returning an ``error`` key on failure."""
    try:
        location = services.pincode.lookup(pincode)
    except MicroApiError as exc:
        return {"pincode": pincode, "error": exc.message}
    return {
        "pincode": location.pincode,
        "city": location.city,
        "state": location.state,
    }


def _emit(payload: object, output: Path | None) -> None:
    output_str = json.dumps(payload, indent=2, ensure_ascii=False)
    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(output_str)
        print(f"Output written to {output}")
    else:
        print(output_str)


def _serve(config: AppConfig, host: str, port: int) -> None:
    uvicorn.run(create_app(config), host=host, port=port)


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and dispatch to the appropriate command.

    Args:
        argv: Command-line arguments (defaults to sys.argv).
    """
    parser = argparse.ArgumentParser(
        description="Micro APIs Collection",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-c", "--config", type=Path, help="YAML configuration file")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP server")
    serve_parser.add_argument("--host", default="0.0.0.0", help="Bind address")
    serve_parser.add_argument("--port", type=int, default=5000, help="Bind port")

    ocr_parser = subparsers.add_parser("ocr", help="Extract text from local files")
    ocr_parser.add_argument("files", nargs="+", type=Path, help="Image or PDF files")
    ocr_parser.add_argument(
        "-l", "--languages", help="Tesseract languages, e.g. eng+hin"
    )
    ocr_parser.add_argument(
        "--basic", action="store_true", help="Single pass without refinement"
    )
    ocr_parser.add_argument("-o", "--output", type=Path, help="Output JSON file")

    pin_parser = subparsers.add_parser("pincode", help="Look up a pincode")
    pin_parser.add_argument("pincode", help="Six-digit Indian pincode")

    args = parser.parse_args(argv)

    config = load_config(args.config)
    setup_logging(config.log_level)

    if args.command == "serve":
        _serve(config, args.host, args.port)
    elif args.command == "ocr":
        missing = [str(f) for f in args.files if not f.exists()]
        if missing:
            print(f"Error: {', '.join(missing)} does not exist", file=sys.stderr)
            sys.exit(1)
        services = build_services(config)
        try:
            results = ocr_files(services, args.files, args.languages, args.basic)
        finally:
            services.close()
        _emit(results, args.output)
    elif args.command == "pincode":
        services = build_services(config)
        try:
            result = lookup_pincode(services, args.pincode)
        finally:
            services.close()
        _emit(result, None)
        if "error" in result:
            sys.exit(1)
    else:
        parser.print_help()
        sys.exit(0)


if __name__ == "__main__":
    main()
