"""
Tests for the credproof CLI.

Copyright (c) 2026 Momentum. All rights reserved.
"""

import json
import logging

import pytest

from credproof.cli import (
    EXIT_MALFORMED,
    EXIT_NO_WITNESS,
    EXIT_PROVING_SYSTEM,
    EXIT_REJECTED,
    CredProofCLI,
    OutputFormat,
    format_output,
)


SUBJECT = "0x5b38da6a701c568545dcfcb03fcb875f56beddc4"
BIRTH_2000 = "946684800"
CURRENT_2020 = "1577836800"
CURRENT_2017 = "1514678400"


@pytest.fixture(autouse=True)
def workspace(tmp_path, monkeypatch):
    """Run every command in an empty directory with no config files around."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    yield tmp_path
    root = logging.getLogger("credproof")
    for handler in list(root.handlers):
        root.removeHandler(handler)
    root.setLevel(logging.NOTSET)


def run(capsys, *argv):
    code = CredProofCLI().run(list(argv))
    out = capsys.readouterr().out
    return code, (json.loads(out) if out.strip() else None)


@pytest.fixture
def credentials(capsys):
    assert run(capsys, "keygen", "--out", "a.json", "--name", "dmv")[0] == 0
    assert run(capsys, "keygen", "--out", "b.json", "--name", "passport-office")[0] == 0
    code, _ = run(capsys, "issue", "dob", "--value", BIRTH_2000, "--key", "a.json",
                  "--subject", SUBJECT, "--out", "dob.json")
    assert code == 0
    code, _ = run(capsys, "issue", "citizenship", "--value", "US", "--key", "b.json",
                  "--subject", SUBJECT, "--out", "cit.json")
    assert code == 0
    return "dob.json", "cit.json"


class TestFormatting:
    """Tests for output formatting."""

    def test_formats(self):
        data = {"valid": True, "nested": {"a": 1}}
        assert json.loads(format_output(data, OutputFormat.JSON)) == data
        assert "valid: true" in format_output(data, OutputFormat.YAML)
        assert "  a: 1" in format_output(data, OutputFormat.TEXT)

    def test_table(self):
        rows = [{"name": "x", "value": 1}, {"name": "longer", "value": 22}]
        lines = format_output(rows, OutputFormat.TABLE).splitlines()
        assert lines[0].startswith("name")
        assert len(lines) == 4


class TestIssuerCommands:
    """keygen and issue."""

    def test_keygen(self, capsys, workspace):
        code, out = run(capsys, "keygen", "--out", "keys/issuer.json", "--name", "dmv")
        assert code == 0
        assert out["name"] == "dmv"
        assert len(out["public_key_hex"]) == 66
        assert (workspace / "keys" / "issuer.json").exists()

    def test_issue(self, capsys, credentials, workspace):
        data = json.loads((workspace / "dob.json").read_text())
        assert data["credential_type"] == "date_of_birth"
        assert data["attribute"] == BIRTH_2000
        assert data["subject"] == str(int(SUBJECT, 16))

    def test_issue_malformed_value(self, capsys):
        run(capsys, "keygen", "--out", "a.json")
        code, out = run(capsys, "issue", "dob", "--value", "yesterday", "--key", "a.json",
                        "--subject", SUBJECT, "--out", "dob.json")
        assert code == EXIT_MALFORMED
        assert out is None

    def test_issue_bad_country(self, capsys):
        run(capsys, "keygen", "--out", "a.json")
        code, _ = run(capsys, "issue", "citizenship", "--value", "U5", "--key", "a.json",
                      "--subject", SUBJECT, "--out", "cit.json")
        assert code == EXIT_MALFORMED


class TestProofCommands:
    """prove and verify."""

    def test_prove_and_verify(self, capsys, credentials, workspace):
        dob, cit = credentials
        code, out = run(capsys, "prove", "--dob", dob, "--citizenship", cit,
                        "--current-date", CURRENT_2020, "--out", "bundle.json")
        assert code == 0
        assert out["public_signals"]["min_age"] == "18"
        assert out["public_signals"]["required_citizenship"] == "21843"
        assert out["hardened"] is False

        code, out = run(capsys, "verify", "--bundle", "bundle.json")
        assert code == 0
        assert out["valid"] is True

    def test_hardened_bundle_verifies(self, capsys, credentials):
        dob, cit = credentials
        code, out = run(capsys, "prove", "--dob", dob, "--citizenship", cit, "--hardened",
                        "--current-date", CURRENT_2020, "--out", "bundle.json")
        assert code == 0
        assert out["hardened"] is True
        assert run(capsys, "verify", "--bundle", "bundle.json", "--hardened")[1]["valid"] is True

    def test_hardened_verifier_rejects_faithful_bundle(self, capsys, credentials, monkeypatch):
        dob, cit = credentials
        run(capsys, "prove", "--dob", dob, "--citizenship", cit,
            "--current-date", CURRENT_2020, "--out", "bundle.json")
        monkeypatch.setenv("CREDPROOF_RELATION_HARDENED", "true")
        code, out = run(capsys, "verify", "--bundle", "bundle.json")
        assert code == EXIT_REJECTED
        assert out["valid"] is False
        assert out["reason"] == "wrong_circuit"

    def test_faithful_verifier_rejects_hardened_bundle(self, capsys, credentials):
        dob, cit = credentials
        run(capsys, "prove", "--dob", dob, "--citizenship", cit, "--hardened",
            "--current-date", CURRENT_2020, "--out", "bundle.json")
        code, out = run(capsys, "verify", "--bundle", "bundle.json")
        assert code == EXIT_REJECTED
        assert out["reason"] == "wrong_circuit"

    def test_gate_rejects_other_variant(self, capsys, credentials, monkeypatch):
        dob, cit = credentials
        run(capsys, "prove", "--dob", dob, "--citizenship", cit, "--out", "bundle.json")
        monkeypatch.setenv("CREDPROOF_RELATION_HARDENED", "true")
        code, out = run(capsys, "verify", "--bundle", "bundle.json", "--submitter", SUBJECT,
                        "--issuer-a", "a.json", "--issuer-b", "b.json")
        assert code == EXIT_REJECTED
        assert out["code"] == "wrong_circuit"

    def test_underage(self, capsys, credentials, workspace):
        dob, cit = credentials
        code, out = run(capsys, "prove", "--dob", dob, "--citizenship", cit,
                        "--current-date", CURRENT_2017, "--out", "bundle.json")
        assert code == EXIT_NO_WITNESS
        assert out is None
        assert not (workspace / "bundle.json").exists()

    def test_wrong_wallet(self, capsys, credentials):
        dob, cit = credentials
        code, _ = run(capsys, "prove", "--dob", dob, "--citizenship", cit, "--wallet", "0x1",
                      "--current-date", CURRENT_2020, "--out", "bundle.json")
        assert code == EXIT_NO_WITNESS

    def test_tampered_bundle(self, capsys, credentials, workspace):
        dob, cit = credentials
        run(capsys, "prove", "--dob", dob, "--citizenship", cit,
            "--current-date", CURRENT_2020, "--out", "bundle.json")
        path = workspace / "bundle.json"
        data = json.loads(path.read_text())
        data["proof"]["public_inputs"][1] = "21"
        data["public_signals"]["min_age"] = "21"
        del data["proof"]["digest"]
        path.write_text(json.dumps(data))
        code, out = run(capsys, "verify", "--bundle", "bundle.json")
        assert code == EXIT_REJECTED
        assert out["valid"] is False

    def test_truncated_bundle(self, capsys, credentials, workspace):
        dob, cit = credentials
        run(capsys, "prove", "--dob", dob, "--citizenship", cit,
            "--current-date", CURRENT_2020, "--out", "bundle.json")
        path = workspace / "bundle.json"
        data = json.loads(path.read_text())
        data["proof"]["public_inputs"] = data["proof"]["public_inputs"][:8]
        del data["proof"]["digest"]
        path.write_text(json.dumps(data))
        code, _ = run(capsys, "verify", "--bundle", "bundle.json", "--submitter", SUBJECT,
                      "--issuer-a", "a.json", "--issuer-b", "b.json")
        assert code == EXIT_PROVING_SYSTEM

    def test_corrupt_bundle(self, capsys, credentials, workspace):
        dob, cit = credentials
        run(capsys, "prove", "--dob", dob, "--citizenship", cit,
            "--current-date", CURRENT_2020, "--out", "bundle.json")
        path = workspace / "bundle.json"
        data = json.loads(path.read_text())
        data["proof"]["digest"] = "0" * 64
        path.write_text(json.dumps(data))
        code, _ = run(capsys, "verify", "--bundle", "bundle.json")
        assert code == EXIT_PROVING_SYSTEM

    def test_gate_accepts_fresh_proof(self, capsys, credentials):
        dob, cit = credentials
        run(capsys, "prove", "--dob", dob, "--citizenship", cit, "--out", "bundle.json")
        code, out = run(capsys, "verify", "--bundle", "bundle.json", "--submitter", SUBJECT,
                        "--issuer-a", "a.json", "--issuer-b", "b.json")
        assert code == 0
        assert out["accepted"] is True
        assert out["code"] == "accepted"

    def test_gate_rejects_stale_proof(self, capsys, credentials):
        dob, cit = credentials
        run(capsys, "prove", "--dob", dob, "--citizenship", cit,
            "--current-date", CURRENT_2020, "--out", "bundle.json")
        code, out = run(capsys, "verify", "--bundle", "bundle.json", "--submitter", SUBJECT,
                        "--issuer-a", "a.json", "--issuer-b", "b.json")
        assert code == EXIT_REJECTED
        assert out["code"] == "stale_proof"

    def test_gate_rejects_swapped_issuers(self, capsys, credentials):
        dob, cit = credentials
        run(capsys, "prove", "--dob", dob, "--citizenship", cit, "--out", "bundle.json")
        code, out = run(capsys, "verify", "--bundle", "bundle.json", "--submitter", SUBJECT,
                        "--issuer-a", "b.json", "--issuer-b", "a.json")
        assert code == EXIT_REJECTED
        assert out["code"] == "untrusted_issuer_a"

    def test_gate_requires_issuers(self, capsys, credentials):
        dob, cit = credentials
        run(capsys, "prove", "--dob", dob, "--citizenship", cit, "--out", "bundle.json")
        code, _ = run(capsys, "verify", "--bundle", "bundle.json", "--submitter", SUBJECT)
        assert code == EXIT_MALFORMED


class TestCheckCommand:
    """check on raw relation inputs."""

    def _write_inputs(self, workspace, make_inputs, **overrides):
        (workspace / "inputs.json").write_text(json.dumps(make_inputs(**overrides).to_dict()))
        return "inputs.json"

    def test_satisfiable(self, capsys, workspace, make_inputs):
        code, out = run(capsys, "check", "--inputs", self._write_inputs(workspace, make_inputs))
        assert code == 0
        assert out["satisfiable"] is True
        assert out["constraints"] > 0

    def test_unsatisfiable(self, capsys, workspace, make_inputs):
        path = self._write_inputs(workspace, make_inputs, citizenship_code=18002)
        code, out = run(capsys, "check", "--inputs", path, "--hardened")
        assert code == EXIT_NO_WITNESS
        assert out == {
            "circuit_id": "zk.age_citizenship.v1",
            "satisfiable": False,
            "hardened": True,
            "constraints": out["constraints"],
        }

    def test_malformed(self, capsys, workspace):
        (workspace / "inputs.json").write_text(json.dumps({"current_date": "soon"}))
        code, _ = run(capsys, "check", "--inputs", "inputs.json")
        assert code == EXIT_MALFORMED

    def test_not_json(self, capsys, workspace):
        (workspace / "inputs.json").write_text("{")
        code, _ = run(capsys, "check", "--inputs", "inputs.json")
        assert code == EXIT_MALFORMED

    def test_missing_file(self, capsys):
        code, _ = run(capsys, "check", "--inputs", "absent.json")
        assert code == 1


class TestConfigCommands:
    """config subcommands."""

    def test_get(self, capsys):
        code, out = run(capsys, "config", "get", "policy.min_age")
        assert code == 0
        assert out == {"path": "policy.min_age", "value": 18}

    def test_set(self, capsys):
        code, out = run(capsys, "config", "set", "relation.comparator_bits", "48")
        assert code == 0
        assert out["value"] == 48

    def test_set_invalid(self, capsys):
        code, _ = run(capsys, "config", "set", "relation.comparator_bits", "999")
        assert code != 0

    def test_show_and_schema(self, capsys):
        assert run(capsys, "config", "show")[1]["prover"]["proof_system"] == "groth16"
        assert "relation" in run(capsys, "config", "schema")[1]["properties"]

    def test_validate(self, capsys, monkeypatch):
        assert run(capsys, "config", "validate")[1] == {"valid": True, "errors": []}
        monkeypatch.setenv("CREDPROOF_PROVER_WORKERS", "0")
        code, out = run(capsys, "config", "validate")
        assert code == 1
        assert out["valid"] is False

    def test_config_file(self, capsys, workspace):
        (workspace / "custom.yaml").write_text("policy:\n  min_age: 21\n")
        code, out = run(capsys, "--config", "custom.yaml", "config", "get", "policy.min_age")
        assert code == 0
        assert out["value"] == 21

    def test_missing_config_file(self, capsys):
        code, _ = run(capsys, "--config", "absent.yaml", "config", "show")
        assert code == 1

    def test_yaml_output(self, capsys):
        code = CredProofCLI().run(["--format", "yaml", "config", "get", "policy.min_age"])
        assert code == 0
        assert "value: 18" in capsys.readouterr().out

    def test_no_command(self, capsys):
        assert CredProofCLI().run([]) == 0
        assert "usage" in capsys.readouterr().out
