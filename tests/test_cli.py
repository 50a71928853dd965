"""
Test Suite: Command Line
========================
Exit codes and output of ``scan`` and ``clean`` with the RPC node faked out.

Run: pytest tests/test_cli.py -v
"""

import json

import pytest
from solders.keypair import Keypair

from conftest import FakeRpc, new_address, spl_accounts, token_entry
from rent_reclaim import cli


@pytest.fixture
def fake_rpc(monkeypatch):
    holder = {}

    def install(rpc):
        holder["rpc"] = rpc
        monkeypatch.setattr("rent_reclaim.orchestrator.RpcClient", lambda *a, **k: rpc)
        return rpc

    monkeypatch.setenv("RECLAIM_SLEEP_MS", "0")
    monkeypatch.setenv("RPC_URL", "http://127.0.0.1:8899")
    return install


@pytest.fixture
def key_file(tmp_path, keypair):
    path = tmp_path / "id.json"
    path.write_text(json.dumps(list(bytes(keypair))))
    return str(path)


def _entries(empty, funded=0):
    return [token_entry(new_address(), 0) for _ in range(empty)] + [
        token_entry(new_address(), 50) for _ in range(funded)
    ]


class TestScanCommand:
    def test_prints_summary(self, fake_rpc, wallet, capsys):
        entries = _entries(2, funded=1)
        fake_rpc(FakeRpc(spl_accounts(entries)))

        assert cli.main(["scan", wallet]) == 0

        out = capsys.readouterr().out
        assert "Closeable (empty):    2" in out
        assert entries[0]["pubkey"] in out
        assert "~0.004079 SOL" in out

    def test_json(self, fake_rpc, wallet, capsys):
        fake_rpc(FakeRpc(spl_accounts(_entries(3, funded=2))))

        assert cli.main(["--json", "scan", wallet]) == 0

        data = json.loads(capsys.readouterr().out)
        assert data["total_scanned"] == 5
        assert data["total_closeable"] == 3
        assert len(data["closeable"]) == 3

    def test_network_error_exits_1(self, fake_rpc, wallet, capsys):
        fake_rpc(FakeRpc(scan_error=True))

        assert cli.main(["scan", wallet]) == 1
        assert "ERROR" in capsys.readouterr().err


class TestCleanCommand:
    def test_requires_keypair(self, fake_rpc, wallet, capsys):
        rpc = fake_rpc(FakeRpc(spl_accounts(_entries(2))))

        assert cli.main(["clean", wallet]) == 1
        assert "Keypair required" in capsys.readouterr().err
        assert rpc.calls == []

    def test_dry_run(self, fake_rpc, wallet, capsys):
        entries = _entries(4)
        rpc = fake_rpc(FakeRpc(spl_accounts(entries)))

        assert cli.main(["clean", wallet, "--dry-run"]) == 0

        out = capsys.readouterr().out
        assert "[DRY RUN]" in out
        assert entries[3]["pubkey"] in out
        assert rpc.writes == 0

    def test_clean_with_yes(self, fake_rpc, wallet, key_file, capsys):
        rpc = fake_rpc(FakeRpc(spl_accounts(_entries(12, funded=1))))

        assert cli.main(["clean", wallet, "--keypair", key_file, "--yes"]) == 0

        out = capsys.readouterr().out
        assert "Accounts closed:    12" in out
        assert rpc.writes == 2

    def test_batch_size_flag(self, fake_rpc, wallet, key_file, capsys):
        rpc = fake_rpc(FakeRpc(spl_accounts(_entries(6))))

        assert cli.main(["clean", wallet, "-k", key_file, "-y", "--batch-size", "2"]) == 0
        assert rpc.writes == 3

    def test_decline(self, fake_rpc, wallet, key_file, monkeypatch, capsys):
        rpc = fake_rpc(FakeRpc(spl_accounts(_entries(3))))
        monkeypatch.setattr("builtins.input", lambda prompt="": "n")

        assert cli.main(["clean", wallet, "--keypair", key_file]) == 0

        assert "Aborted." in capsys.readouterr().out
        assert rpc.writes == 0

    def test_prompt_stays_off_stdout_in_json_mode(self, fake_rpc, wallet, key_file, monkeypatch, capsys):
        rpc = fake_rpc(FakeRpc(spl_accounts(_entries(3))))
        monkeypatch.setattr("builtins.input", lambda prompt="": "n")

        assert cli.main(["--json", "clean", wallet, "--keypair", key_file]) == 0

        captured = capsys.readouterr()
        assert json.loads(captured.out)["state"] == "aborted"
        assert "Proceed?" in captured.err
        assert rpc.writes == 0

    def test_identity_mismatch(self, fake_rpc, tmp_path, capsys):
        rpc = fake_rpc(FakeRpc(spl_accounts(_entries(3))))
        other = tmp_path / "other.json"
        other.write_text(json.dumps(list(bytes(Keypair()))))
        wallet = str(Keypair().pubkey())

        assert cli.main(["clean", wallet, "--keypair", str(other), "--yes"]) == 1

        assert "does not match" in capsys.readouterr().err
        assert rpc.writes == 0

    def test_missing_key_file(self, fake_rpc, wallet, tmp_path, capsys):
        fake_rpc(FakeRpc(spl_accounts(_entries(1))))

        assert cli.main(["clean", wallet, "--keypair", str(tmp_path / "none.json"), "--yes"]) == 1
        assert "not found" in capsys.readouterr().err

    def test_failed_batch_json_report(self, fake_rpc, wallet, key_file, capsys):
        entries = _entries(15)
        fake_rpc(FakeRpc(spl_accounts(entries), failing_accounts=[entries[11]["pubkey"]]))

        assert cli.main(["--json", "clean", wallet, "--keypair", key_file, "--yes"]) == 1

        data = json.loads(capsys.readouterr().out)
        assert data["total_closed"] == 10
        assert [o["succeeded"] for o in data["outcomes"]] == [True, False]
        assert data["state"] == "reporting"
