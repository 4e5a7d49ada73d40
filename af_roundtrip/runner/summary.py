import difflib
import json
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List

from af_roundtrip.runner.driver import RoundTripResult, list_context_files
from af_roundtrip.services import PathLike


@dataclass
class ComparisonResult:
    source: Path
    output: Path
    identical: bool
    diff: str = ""
    missing: bool = False

    def to_dict(self) -> Dict:
        return {
            "source": str(self.source),
            "output": str(self.output),
            "identical": self.identical,
            "missing": self.missing,
            "diff": self.diff,
        }


def build_summary(results: List[RoundTripResult]) -> Dict:
    failed = [r for r in results if not r.success]
    return {
        "generated_at": datetime.now().isoformat(),
        "total": len(results),
        "succeeded": len(results) - len(failed),
        "failed": len(failed),
        "results": [r.to_dict() for r in results],
    }


def write_summary(results: List[RoundTripResult], path: PathLike) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(build_summary(results), f, ensure_ascii=False, indent=2)
    return path


def _lines(path: Path) -> List[str]:
    with open(path, "r", encoding="utf-8") as f:
        return [line.rstrip() for line in f]


def compare_files(source: PathLike, output: PathLike) -> ComparisonResult:
    """Diff an exported context against its source, ignoring trailing whitespace."""
    source, output = Path(source), Path(output)
    if not output.is_file():
        return ComparisonResult(source, output, identical=False, missing=True)
    diff = "\n".join(
        difflib.unified_diff(
            _lines(source),
            _lines(output),
            fromfile=str(source),
            tofile=str(output),
            lineterm="",
        )
    )
    return ComparisonResult(source, output, identical=not diff, diff=diff)


def compare_results(results: Iterable[RoundTripResult]) -> List[ComparisonResult]:
    """Compare every successful round trip with the file it started from."""
    return [compare_files(r.source, r.output) for r in results if r.success and r.output]


def compare_outputs(input_dir: PathLike, output_dir: PathLike) -> List[ComparisonResult]:
    """Compare each input file with the output file of the same name."""
    sources = list_context_files(input_dir)
    return [compare_files(s, Path(output_dir) / s.name) for s in sources]
