from pathlib import Path

import pytest

from teamroster.cli import main
from teamroster.persistence import PlayerStore


def _add(db: Path, name: str, number: str, *extra: str) -> None:
    main(["--db", str(db), "add", name, number, "--position", "Shortstop", *extra])


def test_add_and_list(tmp_path: Path, capsys):
    db = tmp_path / "roster.sqlite"
    _add(db, "Maria Lopez", "7")
    out = capsys.readouterr().out
    assert out.startswith("Registered player ")

    main(["--db", str(db), "list"])
    out = capsys.readouterr().out
    assert "1 players registered" in out
    assert "LOPEZ" in out
    assert "SS" in out


def test_add_rejects_duplicate_number(tmp_path: Path):
    db = tmp_path / "roster.sqlite"
    _add(db, "Maria Lopez", "7")
    with pytest.raises(SystemExit) as excinfo:
        _add(db, "Ana Ruiz", "7")
    assert str(excinfo.value) == "Jersey number 7 is already taken."
    assert PlayerStore(db).count() == 1


def test_add_reports_invalid_fields(tmp_path: Path):
    db = tmp_path / "roster.sqlite"
    with pytest.raises(SystemExit) as excinfo:
        _add(db, "Maria Lopez", "100")
    assert "number: Number must be 1-2 digits" in str(excinfo.value)


def test_list_sorted_descending(tmp_path: Path, capsys):
    db = tmp_path / "roster.sqlite"
    for name, number in (("Ana Ruiz", "2"), ("Maria Lopez", "10"), ("Eva Diaz", "9")):
        _add(db, name, number)
    capsys.readouterr()

    main(["--db", str(db), "list", "--sort-by", "number", "--desc"])
    lines = capsys.readouterr().out.splitlines()[2:]
    assert [line.split()[0] for line in lines] == ["9", "2", "10"]

    with pytest.raises(SystemExit):
        main(["--db", str(db), "list", "--sort-by", "salary"])


def test_export_writes_csv(tmp_path: Path, capsys):
    db = tmp_path / "roster.sqlite"
    _add(db, "Maria Lopez", "7", "--notes", "Lefty")
    output = tmp_path / "roster.csv"
    main(["--db", str(db), "export", "--output", str(output)])
    assert "Wrote 1 players" in capsys.readouterr().out
    lines = output.read_text(encoding="utf-8").splitlines()
    assert lines[0] == "name,jersey_name,number,size,position,position_code,notes"
    assert lines[1] == "Maria Lopez,LOPEZ,7,M,Shortstop,SS,Lefty"


def test_delete_prompts_unless_yes(tmp_path: Path, capsys, monkeypatch):
    db = tmp_path / "roster.sqlite"
    _add(db, "Maria Lopez", "7")
    player_id = capsys.readouterr().out.strip().rsplit(" ", 1)[-1]

    monkeypatch.setattr("builtins.input", lambda prompt: "n")
    main(["--db", str(db), "delete", player_id])
    assert "Cancelled" in capsys.readouterr().out
    assert PlayerStore(db).count() == 1

    main(["--db", str(db), "delete", player_id, "--yes"])
    assert capsys.readouterr().out.strip() == f"Deleted player {player_id}"
    assert PlayerStore(db).count() == 0

    with pytest.raises(SystemExit):
        main(["--db", str(db), "delete", player_id, "--yes"])
