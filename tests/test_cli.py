from pathlib import Path

import pytest

from sdf_dom.cli import main


@pytest.fixture
def data_dir() -> Path:
    """Path to test data directory"""
    return Path(__file__).parent / "sdf_data"


def test_tree(data_dir: Path, capsys: pytest.CaptureFixture) -> None:
    """Test printing every model, link and joint of a document"""
    main(data_dir / "double_pendulum.sdf", no_color=True)
    out = capsys.readouterr().out

    assert "SDF 1.6" in out
    assert "Model: double_pendulum_with_base  xyz (1.0, 0.0, 0.0) rpy (0.0, 0.0, 0.0)" in out
    assert "Link: base  xyz (0.0, 0.0, 0.0) rpy (0.0, 0.0, 0.0)" in out
    assert "Joint: lower_joint [revolute] upper_link → lower_link" in out
    assert "ERRORS" not in out


def test_world_tree(data_dir: Path, capsys: pytest.CaptureFixture) -> None:
    """Test worlds and nested models are printed"""
    main(data_dir / "ver_nested_model.sdf", no_color=True)
    out = capsys.readouterr().out

    assert "World: nested_world" in out
    assert "Model: parent" in out
    assert "  Model: child  xyz (0.0, 1.0, 0.5)" in out


def test_pose_query(data_dir: Path, capsys: pytest.CaptureFixture) -> None:
    """Test printing the pose of one frame relative to another"""
    main(data_dir / "four_bar.sdf", frame="link1", relative_to="link2", no_color=True)
    out = capsys.readouterr().out

    assert out.strip() == "link1 relative to link2: xyz (-0.2, 0.2, 0.0) rpy (0.0, 0.0, 0.0)"


def test_nested_pose_query(data_dir: Path, capsys: pytest.CaptureFixture) -> None:
    """Test querying a frame of a named nested document model"""
    main(data_dir / "ver_nested_model.sdf", frame="mount", relative_to="base", model="parent", no_color=True)
    out = capsys.readouterr().out

    assert "mount relative to base: xyz (0.0, 1.0, 1.0)" in out


def test_frame_errors_exit(data_dir: Path, capsys: pytest.CaptureFixture) -> None:
    """Test frame errors are printed and exit with status 1"""
    with pytest.raises(SystemExit) as exc_info:
        main(data_dir / "err_frame_cycle.sdf", no_color=True)

    assert exc_info.value.code == 1
    out = capsys.readouterr().out
    assert "Link: a  unresolved" in out
    assert "ERRORS (2 FRAME_CYCLE)" in out
    assert "a -> b -> a" in out


def test_unknown_frame(data_dir: Path, capsys: pytest.CaptureFixture) -> None:
    """Test querying a frame that doesn't exist"""
    with pytest.raises(SystemExit):
        main(data_dir / "four_bar.sdf", frame="link9", no_color=True)

    assert "No link or joint named 'link9'" in capsys.readouterr().out


def test_unknown_model(data_dir: Path, capsys: pytest.CaptureFixture) -> None:
    """Test querying a model that doesn't exist"""
    with pytest.raises(SystemExit):
        main(data_dir / "four_bar.sdf", frame="link1", model="missing", no_color=True)

    assert "ELEMENT_MISSING" in capsys.readouterr().out


def test_missing_file(tmp_path: Path) -> None:
    """Test a missing file raises FileNotFoundError"""
    with pytest.raises(FileNotFoundError):
        main(tmp_path / "missing.sdf")
