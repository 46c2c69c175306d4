#!/usr/bin/env python3
"""
credproof CLI

Command-line interface for issuing credentials and producing and checking
age/citizenship proofs.

Usage:
    credproof <command> [subcommand] [options]

Commands:
    keygen      Generate a secp256k1 issuer key
    issue       Issue a date-of-birth or citizenship credential
    prove       Build a proof bundle from two credentials
    verify      Verify a proof bundle (optionally through the gate)
    check       Satisfiability check of raw relation inputs
    config      Configuration management

Exit codes:
    0  success
    1  error, or proof rejected
    2  malformed input
    3  no witness exists for the inputs
    4  proving system failure

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import argparse
import json
import sys
import time
from enum import Enum
from pathlib import Path
from typing import Any, List, Optional

import yaml

from credproof import __version__
from credproof.config import ConfigError, get_config, get_config_manager
from credproof.hardening import ValidationErrors
from credproof.observability import configure_logging


EXIT_REJECTED = 1
EXIT_MALFORMED = 2
EXIT_NO_WITNESS = 3
EXIT_PROVING_SYSTEM = 4


class OutputFormat(Enum):
    """Output format options."""
    JSON = "json"
    YAML = "yaml"
    TABLE = "table"
    TEXT = "text"


class CLIError(Exception):
    """CLI error with exit code."""
    def __init__(self, message: str, exit_code: int = 1):
        super().__init__(message)
        self.exit_code = exit_code


def format_output(data: Any, fmt: OutputFormat = OutputFormat.JSON) -> str:
    """Format data for output."""
    if fmt == OutputFormat.JSON:
        return json.dumps(data, indent=2, default=str)
    elif fmt == OutputFormat.YAML:
        return yaml.dump(data, default_flow_style=False)
    elif fmt == OutputFormat.TABLE:
        return _format_table(data)
    else:
        return _format_text(data)


def _format_table(data: Any) -> str:
    """Format data as ASCII table."""
    if isinstance(data, list) and data and isinstance(data[0], dict):
        headers = list(data[0].keys())
        rows = [[str(row.get(h, ""))[:40] for h in headers] for row in data]
        widths = [max(len(h), max(len(r[i]) for r in rows)) for i, h in enumerate(headers)]

        lines = []
        lines.append(" | ".join(h.ljust(widths[i]) for i, h in enumerate(headers)))
        lines.append("-+-".join("-" * w for w in widths))
        for row in rows:
            lines.append(" | ".join(c.ljust(widths[i]) for i, c in enumerate(row)))
        return "\n".join(lines)
    return _format_text(data)


def _format_text(data: Any, indent: int = 0) -> str:
    pad = "  " * indent
    if isinstance(data, dict):
        lines = []
        for k, v in data.items():
            if isinstance(v, (dict, list)):
                lines.append(f"{pad}{k}:")
                lines.append(_format_text(v, indent + 1))
            else:
                lines.append(f"{pad}{k}: {v}")
        return "\n".join(lines)
    if isinstance(data, list):
        return "\n".join(f"{pad}- {item}" for item in data)
    return f"{pad}{data}"


def _read_json(path: str) -> Any:
    p = Path(path)
    if not p.exists():
        raise CLIError(f"File not found: {p}")
    try:
        return json.loads(p.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise CLIError(f"Not valid JSON: {p}: {e}", EXIT_MALFORMED) from e


class CredProofCLI:
    """Main CLI application."""

    def __init__(self):
        self.parser = argparse.ArgumentParser(
            prog="credproof",
            description="Zero-knowledge age and citizenship proofs from issued credentials",
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )
        self.parser.add_argument(
            "--version", "-V",
            action="version",
            version=f"credproof {__version__}",
        )
        self.parser.add_argument(
            "--format", "-f",
            choices=["json", "yaml", "table", "text"],
            default="json",
            help="Output format (default: json)",
        )
        self.parser.add_argument(
            "--quiet", "-q",
            action="store_true",
            help="Suppress non-essential output",
        )
        self.parser.add_argument(
            "--config", "-c",
            help="YAML configuration file (default: search standard locations)",
        )

        self.subparsers = self.parser.add_subparsers(dest="command", help="Commands")
        self._register_commands()
        self.exit_code = 0

    def _register_commands(self) -> None:
        """Register all command groups."""
        self._register_keygen_command()
        self._register_issue_commands()
        self._register_prove_command()
        self._register_verify_command()
        self._register_check_command()
        self._register_config_commands()

    def _register_keygen_command(self) -> None:
        keygen = self.subparsers.add_parser("keygen", help="Generate a secp256k1 issuer key")
        keygen.add_argument("--out", "-o", required=True, help="Key file to write")
        keygen.add_argument("--name", "-n", default="", help="Issuer display name")

    def _register_issue_commands(self) -> None:
        """Register issue subcommands."""
        issue = self.subparsers.add_parser("issue", help="Issue a credential")
        issue_sub = issue.add_subparsers(dest="subcommand")

        # issue dob
        dob = issue_sub.add_parser("dob", help="Issue a date-of-birth credential")
        dob.add_argument("--value", "-v", required=True, help="Birth date as Unix timestamp")

        # issue citizenship
        citizenship = issue_sub.add_parser("citizenship", help="Issue a citizenship credential")
        citizenship.add_argument("--value", "-v", required=True, help="ASCII country code (e.g. US)")

        for cmd in (dob, citizenship):
            cmd.add_argument("--key", "-k", required=True, help="Issuer key file")
            cmd.add_argument("--subject", "-s", required=True, help="Subject identifier (decimal or 0x-hex)")
            cmd.add_argument("--nonce", type=int, help="Credential nonce (default: random 64-bit)")
            cmd.add_argument("--out", "-o", required=True, help="Credential file to write")

    def _register_prove_command(self) -> None:
        prove = self.subparsers.add_parser("prove", help="Build a proof bundle")
        prove.add_argument("--dob", required=True, help="Date-of-birth credential file")
        prove.add_argument("--citizenship", required=True, help="Citizenship credential file")
        prove.add_argument("--wallet", "-w", help="Submitting wallet (default: credential subject)")
        prove.add_argument("--current-date", type=int, help="Unix timestamp (default: now)")
        prove.add_argument("--min-age", type=int, help="Minimum age (default: policy.min_age)")
        prove.add_argument(
            "--required-citizenship",
            help="Required country code (default: policy.required_citizenship)",
        )
        prove.add_argument("--hardened", action="store_true", default=None, help="Use the hardened relation")
        prove.add_argument("--out", "-o", required=True, help="Proof bundle file to write")

    def _register_verify_command(self) -> None:
        verify = self.subparsers.add_parser("verify", help="Verify a proof bundle")
        verify.add_argument("--bundle", "-b", required=True, help="Proof bundle file")
        verify.add_argument("--submitter", help="Submitting wallet; runs the verification gate")
        verify.add_argument("--issuer-a", help="Trusted issuer A key file (gate)")
        verify.add_argument("--issuer-b", help="Trusted issuer B key file (gate)")
        verify.add_argument(
            "--hardened", action="store_true", default=None,
            help="Accept only the hardened relation (default: relation.hardened)",
        )

    def _register_check_command(self) -> None:
        check = self.subparsers.add_parser("check", help="Check satisfiability of relation inputs")
        check.add_argument("--inputs", "-i", required=True, help="JSON file with all seventeen inputs")
        check.add_argument("--hardened", action="store_true", default=None, help="Use the hardened relation")

    def _register_config_commands(self) -> None:
        """Register config subcommands."""
        config = self.subparsers.add_parser("config", help="Configuration management")
        config_sub = config.add_subparsers(dest="subcommand")

        # config get
        get = config_sub.add_parser("get", help="Get configuration value")
        get.add_argument("path", help="Config path (e.g., policy.min_age)")

        # config set
        set_cmd = config_sub.add_parser("set", help="Set configuration value (this process only)")
        set_cmd.add_argument("path", help="Config path")
        set_cmd.add_argument("value", help="Value to set")

        # config show
        config_sub.add_parser("show", help="Show all configuration")

        # config validate
        config_sub.add_parser("validate", help="Validate configuration")

        # config schema
        config_sub.add_parser("schema", help="Export configuration schema")

    def run(self, args: Optional[List[str]] = None) -> int:
        """Run the CLI."""
        parsed = self.parser.parse_args(args)

        if not parsed.command:
            self.parser.print_help()
            return 0

        self.exit_code = 0
        try:
            self._configure(parsed)
            fmt = OutputFormat(parsed.format)
            result = self._dispatch(parsed)

            if result is not None:
                print(format_output(result, fmt))

            return self.exit_code

        except CLIError as e:
            if not parsed.quiet:
                print(f"Error: {e}", file=sys.stderr)
            return e.exit_code

        except Exception as e:
            if not parsed.quiet:
                print(f"Error: {e}", file=sys.stderr)
            return self._exit_code_for(e)

    @staticmethod
    def _exit_code_for(error: Exception) -> int:
        from credproof.workflow import ProofNotConstructible
        from credproof.zkp import ProvingSystemError

        if isinstance(error, (ValidationErrors, ValueError)):
            return EXIT_MALFORMED
        if isinstance(error, ProofNotConstructible):
            return EXIT_NO_WITNESS
        if isinstance(error, ProvingSystemError):
            return EXIT_PROVING_SYSTEM
        return 1

    def _configure(self, args: argparse.Namespace) -> None:
        mgr = get_config_manager()
        try:
            if args.config:
                mgr.load_from_file(args.config)
            else:
                mgr.load_defaults()
        except ConfigError as e:
            raise CLIError(str(e)) from e

        config = get_config()
        level = "warning" if args.quiet else config.observability.log_level.get()
        configure_logging(level, config.observability.log_format.get())

    def _dispatch(self, args: argparse.Namespace) -> Any:
        """Dispatch command to handler."""
        cmd = args.command
        subcmd = getattr(args, "subcommand", None)

        handler_name = f"_handle_{cmd}_{subcmd}" if subcmd else f"_handle_{cmd}"
        handler = getattr(self, handler_name, None)

        if handler is None:
            raise CLIError(f"Unknown command: {cmd} {subcmd or ''}")

        return handler(args)

    # Issuer handlers
    def _handle_keygen(self, args: argparse.Namespace) -> Any:
        from credproof.issuer import IssuerKey
        key = IssuerKey.generate(args.name)
        path = key.save(args.out)
        x, y = key.public_point()
        return {
            "key_file": str(path),
            "name": key.name,
            "public_key": {"x": str(x), "y": str(y)},
            "public_key_hex": key.public_hex(),
        }

    def _issue(self, args: argparse.Namespace, issue_fn: Any) -> Any:
        from credproof.issuer import IssuerKey
        key = IssuerKey.load(args.key)
        credential = issue_fn(key, args.value, args.subject, args.nonce)
        path = credential.save(args.out)
        return {
            "credential_file": str(path),
            "credential_type": credential.credential_type.value,
            "subject": str(credential.subject),
            "commitment": str(credential.commitment),
            "issuer_public_key_hex": credential.issuer_public_key_hex,
        }

    def _handle_issue_dob(self, args: argparse.Namespace) -> Any:
        from credproof.issuer import issue_dob_credential
        return self._issue(args, issue_dob_credential)

    def _handle_issue_citizenship(self, args: argparse.Namespace) -> Any:
        from credproof.issuer import issue_citizenship_credential
        return self._issue(args, issue_citizenship_credential)

    # Proof handlers
    def _handle_prove(self, args: argparse.Namespace) -> Any:
        from credproof.issuer import load_credential
        from credproof.workflow import ProofService, build_inputs

        config = get_config()
        dob = load_credential(args.dob)
        citizenship = load_credential(args.citizenship)

        inputs = build_inputs(
            dob,
            citizenship,
            current_date=args.current_date if args.current_date is not None else int(time.time()),
            min_age=args.min_age if args.min_age is not None else config.policy.min_age.get(),
            required_citizenship=(
                args.required_citizenship or config.policy.required_citizenship.get()
            ),
            subject_wallet=args.wallet if args.wallet is not None else dob.subject,
        )

        bundle = ProofService(hardened=args.hardened).generate_proof(inputs)
        path = bundle.save(args.out)
        return {
            "bundle_file": str(path),
            "proof_digest": bundle.proof.digest,
            "circuit_digest": bundle.circuit_digest,
            "hardened": bundle.hardened,
            "public_signals": {k: v.to_decimal() for k, v in bundle.public_signals.items()},
        }

    def _handle_verify(self, args: argparse.Namespace) -> Any:
        from credproof.workflow import ProofBundle, ProofService

        bundle = ProofBundle.load(args.bundle)
        service = ProofService(hardened=args.hardened)

        if args.submitter is None:
            if bundle.hardened != service.hardened or bundle.circuit_digest != service.circuit_digest:
                self.exit_code = EXIT_REJECTED
                return {"valid": False, "reason": "wrong_circuit", "proof_digest": bundle.proof.digest}
            valid = service.verify_bundle(bundle)
            if not valid:
                self.exit_code = EXIT_REJECTED
            return {"valid": valid, "proof_digest": bundle.proof.digest}

        from credproof.gate import IssuerRole, VerificationGate
        from credproof.issuer import IssuerKey

        if not args.issuer_a or not args.issuer_b:
            raise CLIError("--submitter requires --issuer-a and --issuer-b", EXIT_MALFORMED)

        gate = VerificationGate(owner=args.submitter, service=service)
        for role, key_file in ((IssuerRole.A, args.issuer_a), (IssuerRole.B, args.issuer_b)):
            x, y = IssuerKey.load(key_file).public_point()
            gate.add_trusted_issuer(args.submitter, role, x, y)

        decision = gate.submit(bundle, args.submitter)
        if not decision.accepted:
            self.exit_code = EXIT_REJECTED
        return decision.to_dict()

    def _handle_check(self, args: argparse.Namespace) -> Any:
        from credproof.circuit import synthesize

        config = get_config()
        data = _read_json(args.inputs)
        if not isinstance(data, dict):
            raise CLIError("Inputs file must hold a JSON object", EXIT_MALFORMED)

        hardened = config.relation.hardened.get() if args.hardened is None else args.hardened
        result = synthesize(data, hardened=hardened, bits=config.relation.comparator_bits.get())
        if not result.satisfiable:
            self.exit_code = EXIT_NO_WITNESS
        return {
            "circuit_id": result.circuit_id,
            "satisfiable": result.satisfiable,
            "hardened": result.hardened,
            "constraints": result.constraint_count,
        }

    # Config handlers
    def _handle_config_get(self, args: argparse.Namespace) -> Any:
        mgr = get_config_manager()
        return {"path": args.path, "value": mgr.get(args.path)}

    def _handle_config_set(self, args: argparse.Namespace) -> Any:
        mgr = get_config_manager()
        mgr.set(args.path, args.value)
        return {"path": args.path, "value": mgr.get(args.path), "status": "updated"}

    def _handle_config_show(self, args: argparse.Namespace) -> Any:
        mgr = get_config_manager()
        return mgr.config.to_dict()

    def _handle_config_validate(self, args: argparse.Namespace) -> Any:
        mgr = get_config_manager()
        errors = mgr.validate()
        if errors:
            self.exit_code = 1
        return {"valid": len(errors) == 0, "errors": errors}

    def _handle_config_schema(self, args: argparse.Namespace) -> Any:
        mgr = get_config_manager()
        return mgr.export_schema()


def main() -> int:
    """CLI entry point."""
    cli = CredProofCLI()
    return cli.run()


if __name__ == "__main__":
    sys.exit(main())
