import argparse
import json
import logging
import sys
from pathlib import Path

from .compiler import compile_document
from .config import settings
from .converter import schema_to_document
from .models import ContentSchema, Document, Metadata
from .preview import render_preview

logger = logging.getLogger(__name__)


def load_json(path: str) -> dict:
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def load_document(schema_path: str, metadata_path: str | None = None) -> Document:
    """Read a content schema (and optional metadata) file into a block document."""
    schema = ContentSchema.model_validate(load_json(schema_path))
    metadata = Metadata.model_validate(load_json(metadata_path)) if metadata_path else Metadata()
    return schema_to_document(schema, metadata, config=settings)


def write_output(text: str, output: str | None) -> None:
    if output:
        Path(output).write_text(text, encoding="utf-8")
        logger.info(f"Wrote {output}")
    else:
        sys.stdout.write(text)


def run_compile(schema_path: str, metadata_path: str | None = None, output: str | None = None) -> None:
    document = load_document(schema_path, metadata_path)
    write_output(compile_document(document, settings), output)


def run_preview(schema_path: str, metadata_path: str | None = None, output: str | None = None) -> None:
    document = load_document(schema_path, metadata_path)
    write_output(render_preview(document, config=settings), output)


def run_convert(schema_path: str, metadata_path: str | None = None, output: str | None = None) -> None:
    document = load_document(schema_path, metadata_path)
    write_output(document.model_dump_json(indent=2) + "\n", output)


def serve(host: str, port: int) -> None:
    import uvicorn
    from .web import app

    logger.info(f"Starting web server on {host}:{port}")
    uvicorn.run(app, host=host, port=port)


def cli(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="newsletter-studio",
        description="Newsletter Studio - Build block newsletters and compile them to email HTML",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug messages")
    commands = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (
        ("compile", "Compile a content schema to email HTML"),
        ("preview", "Render the editing canvas for a content schema"),
        ("convert", "Print the block document built from a content schema"),
    ):
        command = commands.add_parser(name, help=help_text)
        command.add_argument("schema", help="Content schema JSON file")
        command.add_argument("--metadata", help="Document metadata JSON file")
        command.add_argument("-o", "--output", help="Output file (default: stdout)")

    serve_parser = commands.add_parser("serve", help="Start the editing web API")
    serve_parser.add_argument("--host", default=settings.host)
    serve_parser.add_argument("--port", type=int, default=settings.port)

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    if args.command == "serve":
        serve(args.host, args.port)
    elif args.command == "compile":
        run_compile(args.schema, args.metadata, args.output)
    elif args.command == "preview":
        run_preview(args.schema, args.metadata, args.output)
    else:
        run_convert(args.schema, args.metadata, args.output)


if __name__ == "__main__":
    cli()
