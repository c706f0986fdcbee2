import json

import pytest

from ranking_expanded.cli import build_parser, main
from ranking_expanded.datasets import load_outlines


@pytest.fixture
def inputs(tmp_path):
    outlines = tmp_path / "outlines.jsonl"
    outlines.write_text(
        json.dumps(
            {
                "page_id": "enwiki:Sea%20turtle",
                "page_name": "Sea turtle",
                "skeleton": [
                    {
                        "heading": "Shell",
                        "heading_id": "Shell",
                        "children": [{"heading": "Carapace", "heading_id": "Carapace"}],
                    }
                ],
            }
        )
        + "\n\n",
        encoding="utf-8",
    )
    collection = tmp_path / "paragraphs.jsonl"
    collection.write_text(
        "\n".join(
            json.dumps(doc)
            for doc in [
                {"paragraphid": "P0", "text": "Sea turtles have a hard shell."},
                {"paragraphid": "P1", "text": "The carapace is the upper shell."},
                {"paragraphid": "P2", "text": "Goats live in the mountains."},
            ]
        )
        + "\n",
        encoding="utf-8",
    )
    return outlines, collection, tmp_path / "out.run"


def _args(inputs, *rest, output="run"):
    outlines, collection, run_file = inputs
    return ["paragraph", "section", output, str(outlines), str(collection), str(run_file), *rest]


def test_load_outlines_skips_blank_lines(inputs):
    pages = list(load_outlines(inputs[0]))
    assert [page.page_name for page in pages] == ["Sea turtle"]


def test_end_to_end_run(inputs):
    status = main(_args(inputs, "sectionpath", "bm25", "rm", "english", "text"))

    lines = inputs[2].read_text(encoding="utf-8").splitlines()
    assert status == 0
    assert {line.split()[0] for line in lines} == {
        "enwiki:Sea%20turtle/Shell",
        "enwiki:Sea%20turtle/Shell/Carapace",
    }
    assert all(line.endswith(" Lucene-sectionpath-bm25") for line in lines)
    assert "P2" not in {line.split()[2] for line in lines}


def test_display_mode_writes_stdout(inputs, capsys):
    status = main(_args(inputs, "title", "ql", "none", "std", output="display"))

    out = capsys.readouterr().out
    assert status == 0
    assert "Query: enwiki:Sea%20turtle/Shell" in out
    assert not inputs[2].exists()


def test_configuration_error_exits(inputs, capsys):
    with pytest.raises(SystemExit) as excinfo:
        main(_args(inputs, "sectionpath", "tfidf", "none", "std"))
    assert excinfo.value.code == 2
    assert "Unknown retrieval model 'tfidf'" in capsys.readouterr().err


@pytest.mark.parametrize("missing", [0, 1])
def test_missing_input_file_exits_before_run(inputs, capsys, missing):
    paths = list(inputs)
    paths[missing].unlink()

    with pytest.raises(SystemExit) as excinfo:
        main(_args(paths, "title", "bm25", "none", "std"))

    assert excinfo.value.code == 2
    assert "does not exist" in capsys.readouterr().err
    assert not paths[2].exists()


def test_failed_unit_sets_exit_status(tmp_path):
    outlines = tmp_path / "outlines.jsonl"
    outlines.write_text(
        "\n".join(
            json.dumps({"page_id": page_id, "page_name": name})
            for page_id, name in [("p1", "turtle"), ("p2", "goat")]
        ),
        encoding="utf-8",
    )
    collection = tmp_path / "paragraphs.jsonl"
    collection.write_text(
        json.dumps({"paragraphid": "P0", "text": "goat"})
        + "\n"
        + json.dumps({"paragraphid": None, "text": "turtle"})
        + "\n",
        encoding="utf-8",
    )
    run_file = tmp_path / "out.run"

    status = main(
        ["paragraph", "page", "run", str(outlines), str(collection), str(run_file),
         "title", "bm25", "none", "std"]
    )

    assert status == 1
    lines = run_file.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 1
    assert lines[0].startswith("p2 Q0 P0 1 ")


def test_tool_version(capsys):
    with pytest.raises(SystemExit) as excinfo:
        build_parser().parse_args(["--tool-version"])
    assert excinfo.value.code == 0
    assert capsys.readouterr().out.strip() == "2"
