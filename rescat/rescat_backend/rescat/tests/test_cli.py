import json

from conftest import make_fake_client, raw_item

from rescat import cli


def test_resources_command_prints_cards(monkeypatch, capsys):
    fake = make_fake_client(items={"K1": [raw_item("A", "book", title="EEG Basics")]},
                            names={"K1": "Part 1"})
    monkeypatch.setattr(cli, "ZoteroClient", fake)
    assert cli.main(["resources", "-c", "K1"]) == 0
    out = json.loads(capsys.readouterr().out)
    assert out[0]["id"] == "A"
    assert out[0]["manifestoPart"] == ["Part 1"]


def test_poll_then_versions(monkeypatch, capsys):
    monkeypatch.setattr(cli, "ZoteroClient", make_fake_client(versions={"K1": "17"}))
    assert cli.main(["poll", "--keys", "K1"]) == 0
    out = json.loads(capsys.readouterr().out)
    assert out["changed"] == 1
    assert cli.main(["versions"]) == 0
    assert json.loads(capsys.readouterr().out) == {"K1": "17"}


def test_upstream_failure_exit_code(monkeypatch, capsys):
    monkeypatch.setattr(cli, "ZoteroClient", make_fake_client(failing={"K1"}))
    assert cli.main(["resources", "-c", "K1"]) == 1
    assert "K1" in capsys.readouterr().err
