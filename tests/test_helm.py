"""Tests for helm library."""

from pathlib import Path

import pytest

from release_local.exceptions import FetchException, InputException, RenderException
from release_local.helm import Helm, chart_slug, load_chart_metadata

FAKE_HELM = """#!/bin/sh
dir=$(dirname "$0")
echo "$@" >> "$dir/args.txt"
if [ -f "$dir/fail" ]; then
  echo "Error: $1 failed" >&2
  exit 1
fi
if [ "$1" = "fetch" ]; then
  mkdir -p "$3/redis"
fi
"""


@pytest.fixture(name="bin_dir")
def bin_dir_fixture(tmp_path: Path) -> Path:
    """Fixture for a directory holding a fake helm binary."""
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    helm = bin_dir / "helm"
    helm.write_text(FAKE_HELM)
    helm.chmod(0o755)
    return bin_dir


@pytest.fixture(name="helm")
def helm_fixture(bin_dir: Path) -> Helm:
    """Fixture for a Helm that runs the fake binary."""
    return Helm(binary=str(bin_dir / "helm"))


def helm_args(bin_dir: Path) -> list[str]:
    """Return the arguments of each helm invocation."""
    return (bin_dir / "args.txt").read_text().splitlines()


async def test_template(helm: Helm, bin_dir: Path, tmp_path: Path) -> None:
    """Test rendering a chart."""
    await helm.template(
        tmp_path / "demo",
        "demo",
        "demo-ns",
        tmp_path / "output",
        is_upgrade=True,
        values=["replicas=2", "image.tag=v1"],
        value_files=["values.yaml"],
    )
    assert helm_args(bin_dir) == [
        f"template demo {tmp_path / 'demo'} --namespace demo-ns "
        f"--output-dir {tmp_path / 'output'} --is-upgrade "
        "--set replicas=2 --set image.tag=v1 --values values.yaml"
    ]


async def test_template_failure(helm: Helm, bin_dir: Path, tmp_path: Path) -> None:
    """Test a chart that fails to render."""
    (bin_dir / "fail").write_text("")
    with pytest.raises(RenderException, match="Error: template failed"):
        await helm.template(tmp_path, "demo", "demo-ns", tmp_path / "output")


async def test_fetch_local_chart(helm: Helm, bin_dir: Path, tmp_path: Path) -> None:
    """Test a local chart is used as is."""
    chart_dir = tmp_path / "charts" / "demo"
    chart_dir.mkdir(parents=True)
    assert await helm.fetch(str(chart_dir), None, tmp_path / "dest") == chart_dir
    assert not (bin_dir / "args.txt").exists()


async def test_fetch_relative_to_cwd(bin_dir: Path, tmp_path: Path) -> None:
    """Test a local chart path is resolved against the working directory."""
    (tmp_path / "charts" / "demo").mkdir(parents=True)
    helm = Helm(binary=str(bin_dir / "helm"), cwd=tmp_path)
    result = await helm.fetch("charts/demo", None, tmp_path / "dest")
    assert result == tmp_path / "charts" / "demo"


async def test_fetch_remote_chart(helm: Helm, bin_dir: Path, tmp_path: Path) -> None:
    """Test fetching a chart from a repository."""
    result = await helm.fetch(
        "bitnami/redis",
        "17.0.0",
        tmp_path / "dest",
        repo="https://charts.example.com",
        username="admin",
        password="hunter2",
    )
    chart_dir = tmp_path / "dest" / "bitnami-redis"
    assert result == chart_dir / "redis"
    assert helm_args(bin_dir) == [
        f"fetch -d {chart_dir} --untar bitnami/redis "
        "--repo https://charts.example.com --version 17.0.0 "
        "--username admin --password hunter2"
    ]


async def test_fetch_failure(helm: Helm, bin_dir: Path, tmp_path: Path) -> None:
    """Test a chart that can't be fetched does not leak the password."""
    (bin_dir / "fail").write_text("")
    with pytest.raises(FetchException, match="Error: fetch failed") as exc_info:
        await helm.fetch("bitnami/redis", None, tmp_path / "dest", password="hunter2")
    assert "hunter2" not in str(exc_info.value)


@pytest.mark.parametrize(
    ("chart", "expected"),
    [
        ("bitnami/redis", "bitnami-redis"),
        ("oci://registry.example.com/charts/Demo", "oci-registry-example-com-charts-demo"),
        ("", "chart"),
    ],
)
def test_chart_slug(chart: str, expected: str) -> None:
    """Test directory names for chart references."""
    assert chart_slug(chart) == expected


async def test_load_chart_metadata(chart_dir: Path) -> None:
    """Test reading the metadata of a chart."""
    metadata = await load_chart_metadata(chart_dir)
    assert metadata is not None
    assert metadata.name == "demo"
    assert metadata.version == "1.0.0"
    assert metadata.app_version == "2.3.0"


async def test_load_chart_metadata_missing(tmp_path: Path) -> None:
    """Test a chart without a Chart.yaml file."""
    assert await load_chart_metadata(tmp_path) is None


async def test_load_chart_metadata_invalid(tmp_path: Path) -> None:
    """Test a Chart.yaml file that is not a mapping."""
    (tmp_path / "Chart.yaml").write_text("- name: demo\n")
    with pytest.raises(InputException, match="Expected a YAML mapping"):
        await load_chart_metadata(tmp_path)
