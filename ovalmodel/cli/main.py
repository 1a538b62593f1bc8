"""
ovalmodel CLI — load, check and re-emit OVAL definition documents.

Commands:
    ovalmodel summary <file>...            — Show registry counts
    ovalmodel validate <file>...           — Exit 0 only if the model locks
    ovalmodel export <file>... -o <out>    — Write one merged document
    ovalmodel bind <definitions> <vars>    — Show bound external values

Every command merges its input documents, in the order given, into a
single model so that documents may reference each other by identifier.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional

from ..errors import OvalModelError
from ..model import DefinitionModel
from ..variables import VariableModel


# =============================================================================
# OUTPUT FORMATTING
# =============================================================================

def format_counts(model: DefinitionModel) -> list[str]:
    """One line per registry with its entity count."""
    return [
        f"  Definitions: {len(model.definitions)}",
        f"  Tests:       {len(model.tests)}",
        f"  Objects:     {len(model.objects)}",
        f"  States:      {len(model.states)}",
        f"  Variables:   {len(model.variables)}",
    ]


def format_variable_row(variable) -> str:
    """Format an external variable with its bound values."""
    datatype = variable.datatype.value if variable.datatype else "?"
    values = ", ".join(value.text for value in variable.values) or "(unbound)"
    return f"{variable.id} [{datatype}] = {values}"


def load_model(paths: list[str]) -> DefinitionModel:
    """Merge every document into one model."""
    model = DefinitionModel()
    for path in paths:
        model.merge(path)
    return model


# =============================================================================
# CLI COMMANDS
# =============================================================================

def cmd_summary(args: argparse.Namespace) -> int:
    """Show registry counts for the merged documents."""
    try:
        model = load_model(args.files)
    except OvalModelError as e:
        print(f"ERROR: {e}")
        return 1

    print("OVAL Definition Model")
    print("=" * 50)
    for line in format_counts(model):
        print(line)
    print()
    print(f"Valid: {'yes' if model.is_valid() else 'no'}")
    return 0


def cmd_validate(args: argparse.Namespace) -> int:
    """Exit 0 when the merged model validates and can be locked."""
    try:
        model = load_model(args.files)
    except OvalModelError as e:
        print(f"ERROR: {e}")
        return 1

    if model.lock():
        print("Model is valid and locked.")
        return 0

    print("Model is NOT valid. Invalid entities:")
    for entity in model.invalid_entities():
        print(f"  • {entity.kind} {entity.id}")
    return 1


def cmd_export(args: argparse.Namespace) -> int:
    """Merge documents and write a canonical document."""
    try:
        model = load_model(args.files)
        written = model.export(args.output)
    except OvalModelError as e:
        print(f"ERROR: {e}")
        return 1

    print(f"Wrote {written} bytes to {args.output}")
    return 0


def cmd_bind(args: argparse.Namespace) -> int:
    """Bind a variables document and show external variable values."""
    try:
        model = DefinitionModel.import_file(args.definitions)
        variable_model = VariableModel.import_file(args.variables)
    except OvalModelError as e:
        print(f"ERROR: {e}")
        return 1

    model.bind_variable_model(variable_model)

    print("External Variables")
    print("=" * 50)
    external = [variable for variable in model.variables if variable.is_external]
    if not external:
        print("No external variables.")
        return 0
    for variable in external:
        print(format_variable_row(variable))
    return 0


# =============================================================================
# MAIN ENTRY POINT
# =============================================================================

def create_parser() -> argparse.ArgumentParser:
    """Create the CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="ovalmodel",
        description="OVAL definition model — load, check and re-emit definitions",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Show debug diagnostics",
    )

    subparsers = parser.add_subparsers(
        title="commands",
        description="Available commands",
        dest="command",
    )

    summary_parser = subparsers.add_parser(
        "summary",
        help="Show registry counts",
    )
    summary_parser.add_argument("files", nargs="+", help="Definition documents")
    summary_parser.set_defaults(func=cmd_summary)

    validate_parser = subparsers.add_parser(
        "validate",
        help="Check that the merged model can be locked",
    )
    validate_parser.add_argument("files", nargs="+", help="Definition documents")
    validate_parser.set_defaults(func=cmd_validate)

    export_parser = subparsers.add_parser(
        "export",
        help="Merge documents into one canonical document",
    )
    export_parser.add_argument("files", nargs="+", help="Definition documents")
    export_parser.add_argument("-o", "--output", required=True, help="Output path")
    export_parser.set_defaults(func=cmd_export)

    bind_parser = subparsers.add_parser(
        "bind",
        help="Bind external variable values",
    )
    bind_parser.add_argument("definitions", help="Definition document")
    bind_parser.add_argument("variables", help="Variables document")
    bind_parser.set_defaults(func=cmd_bind)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return 0

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
