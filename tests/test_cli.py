import json

from main import main


def test_text_output(capsys):
    assert main(["-t", "15"]) == 0
    out = capsys.readouterr().out
    assert "--- Requirements (clo) ---" in out
    assert "Level:        low" in out
    assert "--- Outfit 1 ---" in out


def test_severe_cold_advisory(capsys):
    assert main(["-t", "-10"]) == 0
    out = capsys.readouterr().out
    assert "Max exposure: 20 min" in out
    assert "frostbite" in out


def test_json_output(capsys):
    assert main(["-t", "-10", "--json"]) == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["requirements"]["max_exposure"] == 20
    assert 1 <= len(payload["outfits"]) <= 3
    assert "substitutes" not in payload


def test_substitutes_for_top_outfit(capsys):
    assert main(["-t", "15", "--json"]) == 0
    top = json.loads(capsys.readouterr().out)["outfits"][0]
    key = top["core"][0]

    assert main(["-t", "15", "--json", "--substitutes", key]) == 0
    payload = json.loads(capsys.readouterr().out)
    assert all(item["key"] != key for item in payload["substitutes"])


def test_replace(capsys):
    assert main(["-t", "15", "--json"]) == 0
    top = json.loads(capsys.readouterr().out)["outfits"][0]
    old = top["core"][-1]
    new = "winter-coat" if old != "winter-coat" else "coat"

    assert main(["-t", "15", "--replace", f"{old}:{new}"]) == 0
    assert f"--- After replacing {old}:{new} ---" in capsys.readouterr().out


def test_garment_not_in_outfit(capsys):
    # No accessories are needed at 15°C
    assert main(["-t", "15", "--substitutes", "scarf"]) == 1
    assert "not part of the top outfit" in capsys.readouterr().out


def test_unknown_garment(capsys):
    assert main(["-t", "15", "--substitutes", "sombrero"]) == 1
    assert "not found in catalog" in capsys.readouterr().out


def test_bad_replace_format(capsys):
    assert main(["-t", "15", "--replace", "coat"]) == 1
    assert "Invalid replace format" in capsys.readouterr().out


def test_missing_catalog(tmp_path, capsys):
    assert main(["-t", "15", "--catalog", str(tmp_path / "missing.json")]) == 1
    assert "not found" in capsys.readouterr().out


def test_invalid_catalog(tmp_path, capsys):
    path = tmp_path / "catalog.json"
    path.write_text('{"garments": {}}', encoding="utf-8")
    assert main(["-t", "15", "--catalog", str(path)]) == 1
    assert "Invalid catalog data" in capsys.readouterr().out


def test_unsatisfiable(tmp_path, capsys, raw_catalog):
    raw_catalog["garments"]["core"] = {
        key: entry for key, entry in raw_catalog["garments"]["core"].items()
        if entry["category"] != "outer"
    }
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps(raw_catalog), encoding="utf-8")
    assert main(["-t", "-10", "--catalog", str(path)]) == 1
    assert "No wearable outfit" in capsys.readouterr().out
