from pathlib import Path

import pytest

from depbundle.config import CONFIG_FILENAME, DEFAULT_DENYLIST, Config, find_config, load_config, parse_config


def test_empty_document_gives_defaults() -> None:
    config = parse_config({})
    assert config == Config()
    assert config.ingestion.denylist == DEFAULT_DENYLIST
    assert config.bundling.tension == 0.85


def test_load_config(tmp_path: Path) -> None:
    path = tmp_path / CONFIG_FILENAME
    path.write_text(
        "\n".join(
            [
                "[ingestion]",
                'root_name = "Cube"',
                'delimiter = "/"',
                'denylist = ["^Scratch"]',
                "",
                "[layout]",
                "outer_radius = 300",
                "",
                "[bundling]",
                "tension = 0.5",
                "",
                "[opacity]",
                "unmatched_edge = 0.1",
                "",
            ]
        ),
        encoding="utf-8",
    )

    config = load_config(path)
    assert config.ingestion.root_name == "Cube"
    assert config.ingestion.delimiter == "/"
    assert config.ingestion.denylist == ("^Scratch",)
    assert config.layout.outer_radius == 300.0
    assert config.bundling.tension == 0.5
    assert config.opacity.unmatched_edge == 0.1
    assert config.opacity.matched_edge == 0.4


@pytest.mark.parametrize(
    "data",
    [
        {"ingestion": {"root_name": "  "}},
        {"ingestion": {"delimiter": ""}},
        {"ingestion": {"denylist": "^Scratch"}},
        {"ingestion": {"denylist": ["("]}},
        {"layout": {"outer_radius": 0}},
        {"bundling": {"tension": 1.2}},
        {"opacity": {"full": -0.5}},
    ],
)
def test_invalid_values_rejected(data: dict) -> None:
    with pytest.raises(ValueError):
        parse_config(data)


def test_find_config_walks_up(tmp_path: Path) -> None:
    (tmp_path / CONFIG_FILENAME).write_text("", encoding="utf-8")
    nested = tmp_path / "a" / "b"
    nested.mkdir(parents=True)
    assert find_config(nested) == (tmp_path / CONFIG_FILENAME).resolve()


def test_find_config_none(tmp_path: Path) -> None:
    # tmp_path may sit below a directory holding a config; only check the shape
    found = find_config(tmp_path)
    assert found is None or found.name == CONFIG_FILENAME
