"""Command-line entry point: outputs and exit codes."""

from __future__ import annotations

import pytest
from PIL import Image

from routista import main as cli
from routista.errors import RoutingError
from routista.gpx import parse_track_file
from routista.pipeline import ShapeRoutePipeline

from conftest import ScriptedProvider, make_rect_image


@pytest.fixture
def use_provider(monkeypatch):
    def _install(provider):
        monkeypatch.setattr(
            cli,
            "ShapeRoutePipeline",
            lambda config: ShapeRoutePipeline(provider, config),
        )

    return _install


def _args(image_path, *extra):
    return [str(image_path), "--lat", "51.5", "--lon", "-0.1", "--radius", "800", *extra]


def test_cli_writes_gpx_and_map(tmp_path, use_provider, capsys):
    use_provider(ScriptedProvider())
    image_path = tmp_path / "shape.png"
    make_rect_image().save(image_path)
    gpx_path = tmp_path / "route.gpx"
    map_path = tmp_path / "route.html"

    code = cli.main(_args(image_path, "--output", str(gpx_path), "--map", str(map_path)))

    assert code == cli.EXIT_OK
    assert len(parse_track_file(gpx_path.read_text(encoding="utf-8"))) > 0
    assert map_path.exists()
    out = capsys.readouterr().out
    assert "km" in out and "accuracy" in out


def test_cli_defaults_gpx_next_to_image(tmp_path, use_provider):
    use_provider(ScriptedProvider())
    image_path = tmp_path / "heart.png"
    make_rect_image().save(image_path)
    assert cli.main(_args(image_path)) == cli.EXIT_OK
    assert (tmp_path / "heart.gpx").exists()


def test_cli_extraction_failure_exit_code(tmp_path, use_provider):
    use_provider(ScriptedProvider())
    image_path = tmp_path / "blank.png"
    Image.new("RGBA", (40, 40), (255, 255, 255, 255)).save(image_path)
    assert cli.main(_args(image_path)) == cli.EXIT_EXTRACTION
    assert not (tmp_path / "blank.gpx").exists()


def test_cli_routing_failure_exit_code(tmp_path, use_provider):
    use_provider(ScriptedProvider(failures={0: RoutingError("no path")}))
    image_path = tmp_path / "shape.png"
    make_rect_image().save(image_path)
    assert cli.main(_args(image_path)) == cli.EXIT_ROUTING


def test_cli_invalid_centre(tmp_path, use_provider):
    use_provider(ScriptedProvider())
    image_path = tmp_path / "shape.png"
    make_rect_image().save(image_path)
    code = cli.main([str(image_path), "--lat", "95", "--lon", "0"])
    assert code == cli.EXIT_FAILURE


def test_cli_rejects_unknown_mode(tmp_path):
    with pytest.raises(SystemExit):
        cli.main([str(tmp_path / "x.png"), "--lat", "0", "--lon", "0", "--mode", "hover"])
