import PIL.Image
import pytest

import zoom


def test_parser_defaults():
    opt = zoom.build_parser().parse_args([])

    assert opt.strategy == "continuous"
    assert (opt.x_center, opt.y_center, opt.scale) == (-1.0, 0.0, 4.0)
    assert opt.final_scale is None
    assert opt.dither_ratio == 0.2


def test_output_config_single_image(tmp_path):
    parser = zoom.build_parser()
    opt = parser.parse_args(["--output", str(tmp_path / "brot")])
    config = zoom.resolve_output_config(opt, parser)

    assert config.modes == ("image",)
    assert config.image_path == (tmp_path / "brot.png").resolve()
    assert config.gif_path is None


def test_output_config_rejects_unknown_mode():
    parser = zoom.build_parser()
    opt = parser.parse_args(["--mode", "mono"])
    with pytest.raises(SystemExit):
        zoom.resolve_output_config(opt, parser)


def test_main_writes_single_frame(tmp_path):
    output = tmp_path / "brot.png"
    zoom.main([
        "--x-res", "32", "--y-res", "18",
        "--strategy", "banded",
        "--initial-iterations", "40",
        "--output", str(output),
    ])

    with PIL.Image.open(output) as image:
        assert image.size == (32, 18)


def test_main_writes_frame_sequence(tmp_path):
    frame_dir = tmp_path / "frames"
    zoom.main([
        "--x-res", "24", "--y-res", "16",
        "--strategy", "dithered",
        "--palette-size", "4",
        "--initial-iterations", "30",
        "--growth-factor", "5",
        "--scale", "4", "--zoom-factor", "0.5", "--final-scale", "1",
        "--mode", "frames", "--frame-dir", str(frame_dir),
    ])

    assert sorted(path.name for path in frame_dir.iterdir()) == ["frame000.png", "frame001.png"]


def test_main_rejects_bad_configuration(tmp_path):
    with pytest.raises(SystemExit):
        zoom.main(["--zoom-factor", "1.5", "--final-scale", "1", "--output", str(tmp_path / "x.png")])
    with pytest.raises(SystemExit):
        zoom.main(["--skew", "2", "--output", str(tmp_path / "x.png")])


def test_main_rejects_final_scale_above_start(tmp_path):
    with pytest.raises(SystemExit):
        zoom.main(["--scale", "4", "--final-scale", "5", "--output", str(tmp_path / "x.png")])
    assert not (tmp_path / "x.png").exists()
