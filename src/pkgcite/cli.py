"""CLI entry point: ``pkgcite scan`` and ``pkgcite lookup``."""

from __future__ import annotations

# Singleton logging: before any pkgcite imports that log at import time
from pkgcite.logging_config import set_level, setup_logging

setup_logging()

import argparse  # noqa: E402
import sys  # noqa: E402

from pkgcite import __version__  # noqa: E402
from pkgcite.citations.scanner import PackageCitations  # noqa: E402
from pkgcite.config import Settings  # noqa: E402
from pkgcite.constants import NO_CONNECTION_MESSAGE  # noqa: E402
from pkgcite.export.report import (  # noqa: E402
    doi_lines,
    format_package,
    summary,
)
from pkgcite.resilience.errors import (  # noqa: E402
    CitationToolError,
    RegistryUnavailableError,
    is_no_connection,
)


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"pkgcite {__version__}")
        return

    if args.command == "scan":
        _run_scan(args)
    elif args.command == "lookup":
        _run_lookup(args)
    else:
        parser.print_help()


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="pkgcite",
        description=(
            "List the citations declared by the classes of "
            "installed and available platform packages."
        ),
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Print version and exit",
    )

    sub = parser.add_subparsers(dest="command")

    scan = sub.add_parser(
        "scan",
        help="Scan all packages and print their citations",
    )
    scan.add_argument(
        "--install-all",
        action="store_true",
        help=(
            "Be careful, it will update/install all available "
            "packages before scanning"
        ),
    )

    lookup = sub.add_parser(
        "lookup",
        help="Print the authors of one or more DOIs from CrossRef",
    )
    lookup.add_argument(
        "dois",
        nargs="+",
        help="DOIs to look up",
    )

    return parser


def _run_scan(args: argparse.Namespace) -> None:
    """Execute the scan command."""
    from pkgcite.registry.local import DirectoryPackageRegistry
    from pkgcite.services.citation_service import (
        export_citations,
        run_scan,
    )

    settings = Settings()
    set_level(settings.log_level)

    def on_package(package_citations: PackageCitations) -> None:
        text = format_package(package_citations, verbose=settings.verbose)
        if text:
            sys.stdout.write(text)
            sys.stdout.flush()

    registry = DirectoryPackageRegistry(settings)
    try:
        run = run_scan(
            settings,
            registry,
            install_all=args.install_all,
            on_package=on_package,
        )
    except RegistryUnavailableError as exc:
        print(f"Warning: {exc}", file=sys.stderr)
        if is_no_connection(exc):
            print(NO_CONNECTION_MESSAGE, file=sys.stderr)
        return
    except CitationToolError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)
    finally:
        registry.close()

    print(
        summary(run.packages, run.result.packages, run.result.total_citations),
        file=sys.stderr,
    )
    if settings.verbose:
        for line in doi_lines(run.result.unique_identifiers()):
            print(line, file=sys.stderr)

    if settings.citations_json is not None:
        export_citations(run.result, settings, settings.citations_json)
        print(f"Output: {settings.citations_json}", file=sys.stderr)


def _run_lookup(args: argparse.Namespace) -> None:
    """Execute the lookup command."""
    from pkgcite.lookup.crossref import CrossRefClient

    settings = Settings()
    set_level(settings.log_level)

    with CrossRefClient(settings) as client:
        written = client.process(args.dois, sys.stdout)

    if written < len(args.dois):
        print(
            f"{len(args.dois) - written} of {len(args.dois)} "
            "DOIs could not be looked up",
            file=sys.stderr,
        )


if __name__ == "__main__":
    main()
