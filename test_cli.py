"""
PasswordSafe - CLI Tests

Drives passwordsafe.cli.main() end to end against a temp store file, with
getpass patched to feed the master password.
"""

import logging
import os

import pyperclip
import pytest

from passwordsafe import cli, crypto

MASTER = "CorrectHorseBatteryStaple!"


@pytest.fixture(autouse=True)
def fast_kdf(monkeypatch):
    monkeypatch.setattr(crypto, "SCRYPT_N", 2**10)


@pytest.fixture
def store_path(tmp_path):
    return str(tmp_path / "passwords.safe")


@pytest.fixture
def prompts(monkeypatch):
    """Answer getpass prompts in order; records what was asked."""
    answers = []
    asked = []

    def fake_getpass(prompt=""):
        asked.append(prompt)
        return answers.pop(0)

    monkeypatch.setattr(cli.getpass, "getpass", fake_getpass)
    return answers, asked


def run(store_path, prompts, *argv, master=MASTER):
    answers, _ = prompts
    answers.insert(0, master)
    return cli.main(["--store", store_path, *argv])


def test_add_then_get(store_path, prompts, capsys):
    assert run(store_path, prompts, "add", "--service", "mail", "--password", "hunter2") == 0
    out = capsys.readouterr().out
    assert "Initialized new password store" in out
    assert "Password added/updated successfully for service: mail" in out

    assert run(store_path, prompts, "get", "--service", "mail") == 0
    assert "Password for mail: hunter2" in capsys.readouterr().out

    assert run(store_path, prompts, "get", "--service", "bank") == 0
    assert "No password found for service: bank" in capsys.readouterr().out


def test_add_prompts_for_password(store_path, prompts, capsys):
    answers, asked = prompts
    answers.append("typed-secret")

    assert run(store_path, prompts, "add", "--service", "mail") == 0
    assert asked == ["Enter master password: ", "Enter password for service 'mail': "]

    assert run(store_path, prompts, "get", "--service", "mail") == 0
    assert "Password for mail: typed-secret" in capsys.readouterr().out


def test_add_generated(store_path, prompts, capsys):
    assert run(store_path, prompts, "add", "--service", "bank",
               "--generate", "--length", "12", "--no-symbols") == 0
    capsys.readouterr()

    assert run(store_path, prompts, "get", "--service", "bank") == 0
    line = capsys.readouterr().out.strip().splitlines()[-1]
    generated = line.split("Password for bank: ", 1)[1]
    assert len(generated) == 12 and generated.isalnum()


def test_list(store_path, prompts, capsys):
    run(store_path, prompts, "add", "--service", "mail", "--password", "a")
    run(store_path, prompts, "add", "--service", "bank", "--password", "b")
    capsys.readouterr()

    assert run(store_path, prompts, "list") == 0
    out = capsys.readouterr().out
    assert "Stored services:\n1. bank\n2. mail\n" in out


def test_missing_store_is_informational(store_path, prompts, capsys):
    assert run(store_path, prompts, "get", "--service", "mail") == 0
    assert "Password store not found" in capsys.readouterr().out

    assert run(store_path, prompts, "list") == 0
    assert "Password store not found" in capsys.readouterr().out
    assert not os.path.exists(store_path)


def test_wrong_master_password(store_path, prompts, capsys, caplog):
    run(store_path, prompts, "add", "--service", "mail", "--password", "hunter2")
    capsys.readouterr()

    assert run(store_path, prompts, "get", "--service", "mail", master="nope") == 1
    assert capsys.readouterr().err == "ERROR: Incorrect master password or corrupted store.\n"

    # Nothing above DEBUG, so default verbosity shows only the one line
    assert not [r for r in caplog.records if r.levelno >= logging.WARNING]


def test_corrupted_store(store_path, prompts, capsys):
    run(store_path, prompts, "add", "--service", "mail", "--password", "hunter2")
    with open(store_path, "r+b") as f:
        f.seek(-1, os.SEEK_END)
        last = f.read(1)
        f.seek(-1, os.SEEK_END)
        f.write(bytes([last[0] ^ 0x01]))
    capsys.readouterr()

    assert run(store_path, prompts, "list") == 1
    assert "Incorrect master password or corrupted store" in capsys.readouterr().err


def test_truncated_store(store_path, prompts, capsys):
    with open(store_path, "wb") as f:
        f.write(b"tiny")

    assert run(store_path, prompts, "list") == 1
    assert "Malformed password store" in capsys.readouterr().err


def test_copy_to_clipboard(store_path, prompts, capsys, monkeypatch):
    copied = []
    monkeypatch.setattr(pyperclip, "copy", copied.append)

    run(store_path, prompts, "add", "--service", "mail", "--password", "hunter2")
    capsys.readouterr()

    assert run(store_path, prompts, "get", "--service", "mail", "--copy") == 0
    assert copied == ["hunter2"]
    assert "hunter2" not in capsys.readouterr().out


def test_store_path_from_environment(tmp_path, prompts, monkeypatch):
    path = tmp_path / "env.safe"
    monkeypatch.setenv(cli.STORE_ENV_VAR, str(path))
    answers, _ = prompts
    answers.append(MASTER)

    assert cli.main(["add", "--service", "mail", "--password", "x"]) == 0
    assert path.exists()


def test_argument_errors(store_path, prompts):
    with pytest.raises(SystemExit) as exc:
        cli.main(["--store", store_path, "get"])
    assert exc.value.code == 2

    with pytest.raises(SystemExit) as exc:
        cli.main(["--store", store_path, "add", "--service", "   "])
    assert exc.value.code == 2

    with pytest.raises(SystemExit) as exc:
        cli.main(["--store", store_path, "add", "--service", "x",
                  "--password", "p", "--generate"])
    assert exc.value.code == 2

    with pytest.raises(SystemExit) as exc:
        cli.main(["--store", store_path])
    assert exc.value.code == 2

    # Nothing was prompted for and nothing written
    _, asked = prompts
    assert asked == []
    assert not os.path.exists(store_path)


def test_interrupt_at_prompt(store_path, monkeypatch):
    def interrupted(prompt=""):
        raise KeyboardInterrupt

    monkeypatch.setattr(cli.getpass, "getpass", interrupted)
    assert cli.main(["--store", store_path, "list"]) == cli.EXIT_INTERRUPTED


def test_empty_password_flag_prompts(store_path, prompts, capsys):
    answers, asked = prompts
    answers.append("typed-secret")

    assert run(store_path, prompts, "add", "--service", "mail", "--password", "") == 0
    assert asked[-1] == "Enter password for service 'mail': "

    assert run(store_path, prompts, "get", "--service", "mail") == 0
    assert "Password for mail: typed-secret" in capsys.readouterr().out


def test_closed_stdin_at_master_prompt(store_path, monkeypatch, capsys):
    def no_input(prompt=""):
        raise EOFError

    monkeypatch.setattr(cli.getpass, "getpass", no_input)
    assert cli.main(["--store", store_path, "list"]) == cli.EXIT_ERROR
    assert "No input available" in capsys.readouterr().err


def test_closed_stdin_at_service_prompt(store_path, monkeypatch, capsys):
    asked = []

    def master_then_eof(prompt=""):
        asked.append(prompt)
        if len(asked) > 1:
            raise EOFError
        return MASTER

    monkeypatch.setattr(cli.getpass, "getpass", master_then_eof)
    assert cli.main(["--store", store_path, "add", "--service", "mail"]) == cli.EXIT_ERROR
    assert asked[-1] == "Enter password for service 'mail': "
    assert "No input available" in capsys.readouterr().err
    assert not os.path.exists(store_path)


def test_unencodable_master_password(store_path, prompts, capsys):
    assert run(store_path, prompts, "add", "--service", "mail", "--password", "x",
               master="pass\udc80word") == cli.EXIT_ERROR
    assert "not valid UTF-8" in capsys.readouterr().err
    assert not os.path.exists(store_path)
