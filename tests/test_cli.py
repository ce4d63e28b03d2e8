from __future__ import annotations

from pathlib import Path

from click.testing import CliRunner
from pypdf import PdfReader

from pdfreshape.cli.main import cli


def test_crop_command_writes_outputs(sample_pdf: Path, tmp_path: Path) -> None:
    output_dir = tmp_path / "out"
    runner = CliRunner()

    result = runner.invoke(
        cli,
        [
            "crop",
            str(sample_pdf),
            "-c", "0,0,100,200",
            "-c", "100,0,200,200",
            "-o", str(output_dir),
            "--exclude-pages", "5",
            "--prefix", "[BASENAME]_cropped",
        ],
    )

    assert result.exit_code == 0, result.output
    output = output_dir / "sample_cropped.pdf"
    assert output.exists()
    assert len(PdfReader(str(output)).pages) == 8
    assert "Successfully written 1 file(s)" in result.output


def test_crop_command_rejects_invalid_area(sample_pdf: Path, tmp_path: Path) -> None:
    result = CliRunner().invoke(cli, ["crop", str(sample_pdf), "-c", "10,10,5,5", "-o", str(tmp_path / "out")])

    assert result.exit_code == 1
    assert "Error" in result.output


def test_crop_command_fails_on_existing_output(sample_pdf: Path, tmp_path: Path) -> None:
    output_dir = tmp_path / "out"
    output_dir.mkdir()
    (output_dir / "sample.pdf").write_bytes(b"old")

    result = CliRunner().invoke(cli, ["crop", str(sample_pdf), "-c", "0,0,100,100", "-o", str(output_dir)])

    assert result.exit_code == 1
    assert "Error" in result.output
    assert (output_dir / "sample.pdf").read_bytes() == b"old"


def test_crop_command_skip_policy_reports_warning(sample_pdf: Path, tmp_path: Path) -> None:
    output_dir = tmp_path / "out"
    output_dir.mkdir()
    (output_dir / "sample.pdf").write_bytes(b"old")

    result = CliRunner().invoke(
        cli,
        ["crop", str(sample_pdf), "-c", "0,0,100,100", "-o", str(output_dir), "--existing-output", "skip"],
    )

    assert result.exit_code == 0, result.output
    assert "Warnings" in result.output
    assert (output_dir / "sample.pdf").read_bytes() == b"old"


def test_version_option() -> None:
    result = CliRunner().invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "pdfreshape" in result.output
