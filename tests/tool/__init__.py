"""Test helpers for release-local tools."""

from pathlib import Path

FAKE_KUBECTL = """#!/bin/sh
dir=$(dirname "$0")
echo "kubectl $@" >> "$dir/args.txt"
case "$1" in
  get) cat "$dir/get.json" ;;
  delete) echo "No resources found" ;;
  *) echo "configmap/config created" ;;
esac
"""

# Renders a single ConfigMap into the directory passed with --output-dir
FAKE_HELM = """#!/bin/sh
dir=$(dirname "$0")
echo "helm $@" >> "$dir/args.txt"
out="$7"
mkdir -p "$out/demo/templates"
cat > "$out/demo/templates/config.yaml" <<END
apiVersion: v1
kind: ConfigMap
metadata:
  name: config
END
"""


def write_binaries(bin_dir: Path) -> tuple[Path, Path]:
    """Write fake helm and kubectl binaries, returning their paths."""
    bin_dir.mkdir(parents=True, exist_ok=True)
    (bin_dir / "get.json").write_text('{"items": []}')
    result = []
    for name, content in (("helm", FAKE_HELM), ("kubectl", FAKE_KUBECTL)):
        binary = bin_dir / name
        binary.write_text(content)
        binary.chmod(0o755)
        result.append(binary)
    return result[0], result[1]


def invocations(bin_dir: Path) -> list[str]:
    """Return the commands run by the fake binaries."""
    args_file = bin_dir / "args.txt"
    if not args_file.exists():
        return []
    return args_file.read_text().splitlines()
