"""
Tests for the budgetlab command-line interface.
"""

import json
from pathlib import Path

import pytest
from budgetlab import __version__
from budgetlab.cli import main

HEADER = "year,kind,system,page_number,chapter_code,chapter_name,class_code,amount_czk\n"


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    (tmp_path / "fact_expenditures_by_chapter.csv").write_text(
        HEADER
        + "2026,exp,exp_odvetvove,1,333,MŠMT,0,850\n"
        + "2026,exp,exp_odvetvove,1,333,MŠMT,31,600\n"
        + "2026,exp,exp_odvetvove,1,333,MŠMT,311,400\n"
        + "2026,exp,exp_odvetvove,1,333,MŠMT,312,200\n"
        + "2026,exp,exp_odvetvove,1,333,MŠMT,32,250\n"
        + "2026,exp,exp_odvetvove,1,333,MŠMT,31_32,850\n"
        + "2026,exp,exp_druhove,2,333,MŠMT,0,850\n",
        encoding="utf-8",
    )
    (tmp_path / "fact_revenues_by_chapter.csv").write_text(
        HEADER + "2026,rev,rev_druhove,3,312,MF,0,500\n",
        encoding="utf-8",
    )
    (tmp_path / "dim_classification.csv").write_text(
        "kind,system,code,name,parent_code,level,is_leaf,is_total\n"
        "exp,exp_odvetvove,0,Celkem,,0,False,True\n"
        "exp,exp_odvetvove,3,Služby,0,1,False,False\n"
        "exp,exp_odvetvove,31,Vzdělávání,3,2,False,False\n"
        "exp,exp_odvetvove,311,Školy,31,3,True,False\n"
        "exp,exp_odvetvove,312,Univerzity,31,3,True,False\n"
        "exp,exp_odvetvove,32,Kultura,3,2,True,False\n",
        encoding="utf-8",
    )
    return tmp_path


def _json(capsys):
    return json.loads(capsys.readouterr().out)


def test_version(capsys):
    with pytest.raises(SystemExit) as exc:
        main(["--version"])
    assert exc.value.code == 0
    assert __version__ in capsys.readouterr().out


def test_tree_json(data_dir, capsys):
    assert main(["tree", "--data-dir", str(data_dir), "--json"]) == 0

    tree = _json(capsys)
    assert tree["value"] == 850
    (services,) = tree["children"]
    assert services["id"] == "3"
    assert {child["id"]: child["value"] for child in services["children"]} == {
        "31": 600,
        "32": 250,
    }


def test_tree_text_depth(data_dir, capsys):
    assert main(["tree", "--data-dir", str(data_dir), "--depth", "1"]) == 0

    out = capsys.readouterr().out
    assert "Služby" in out
    assert "Vzdělávání" not in out


def test_reconcile_json(data_dir, capsys):
    assert main(["reconcile", "--data-dir", str(data_dir), "--json"]) == 0

    output = _json(capsys)
    assert output["total"] == 850
    chapter = output["chapters"]["333"]
    assert chapter["name"] == "MŠMT"
    assert chapter["dropped_composites"] == ["31_32"]
    assert chapter["leaves"] == 3


def test_reconcile_table(data_dir, capsys):
    assert main(["reconcile", "--data-dir", str(data_dir)]) == 0
    assert "Total (exp_odvetvove 2026): 850" in capsys.readouterr().out


def test_layout_with_focus(data_dir, tmp_path, capsys):
    out_file = tmp_path / "layout.json"
    argv = [
        "layout",
        "--data-dir",
        str(data_dir),
        "--width",
        "900",
        "--height",
        "500",
        "--focus",
        "31",
        "-o",
        str(out_file),
    ]
    assert main(argv) == 0

    output = json.loads(out_file.read_text(encoding="utf-8"))
    assert output["focus"] == "31"
    assert [crumb["id"] for crumb in output["breadcrumbs"]] == ["3", "31"]
    assert output["column_width"] == 300.0
    nodes = {node["id"]: node for node in output["nodes"]}
    assert nodes["31"]["target"]["x0"] == 0.0
    assert nodes["31"]["target"]["x1"] == pytest.approx(500.0)
    assert nodes["311"]["show_value"] is True


def test_layout_unknown_focus(data_dir, capsys):
    assert main(["layout", "--data-dir", str(data_dir), "--focus", "999"]) == 1
    assert "999" in capsys.readouterr().err


def test_explicit_files(data_dir, capsys):
    argv = [
        "tree",
        "--data",
        str(data_dir / "fact_expenditures_by_chapter.csv"),
        "--classification",
        str(data_dir / "dim_classification.csv"),
        "--json",
    ]
    assert main(argv) == 0
    assert _json(capsys)["value"] == 850


def test_missing_inputs(capsys):
    assert main(["tree"]) == 1
    assert "--data-dir" in capsys.readouterr().err


def test_catalog_data_dir(data_dir, capsys):
    conf = data_dir / "conf"
    conf.mkdir()
    catalog = conf / "views.yaml"
    catalog.write_text("year: 2026\ndata_dir: ..\n", encoding="utf-8")

    assert main(["tree", "--catalog", str(catalog), "--json"]) == 0
    assert _json(capsys)["value"] == 850


def test_empty_view(data_dir, capsys):
    assert main(["tree", "--data-dir", str(data_dir), "--view", "revenues"]) == 1
    assert "No data" in capsys.readouterr().err


def test_totals(data_dir, capsys):
    argv = [
        "totals",
        "--revenues",
        str(data_dir / "fact_revenues_by_chapter.csv"),
        "--expenditures",
        str(data_dir / "fact_expenditures_by_chapter.csv"),
        "--by-chapter",
        "--json",
    ]
    assert main(argv) == 0

    output = _json(capsys)
    assert output["revenues"] == 500
    assert output["expenditures"] == 850
    assert output["deficit"] == 350
    assert output["revenues_by_chapter"] == {"312": 500}
