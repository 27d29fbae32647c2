from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path

from confweave.errors import ConversionError, ErrorKind


@dataclass(frozen=True, slots=True)
class FieldDiagnostic:
    """One field that fell back to its default during a load."""

    path: str
    kind: ErrorKind
    message: str


@dataclass(frozen=True, slots=True)
class LoadContext:
    """Per-load state threaded through the recursive conversion.

    `base_dir` is where extern files are looked up; it is rebased whenever an
    extern file is followed. `diagnostics` is shared by every context of one
    load call and is never reused afterwards.
    """

    base_dir: Path
    field_path: tuple[str, ...] = ()
    expand_env: bool = False
    diagnostics: list[FieldDiagnostic] | None = field(default=None, compare=False, repr=False)

    @classmethod
    def root(
        cls,
        base_dir: str | Path = ".",
        *,
        expand_env: bool = False,
        diagnostics: list[FieldDiagnostic] | None = None,
    ) -> LoadContext:
        return cls(base_dir=Path(base_dir), expand_env=expand_env, diagnostics=diagnostics)

    @property
    def path(self) -> str:
        out = ""
        for segment in self.field_path:
            if segment.startswith("[") or not out:
                out += segment
            else:
                out += f".{segment}"
        return out

    def child(self, segment: str, *, base_dir: Path | None = None) -> LoadContext:
        return replace(
            self,
            field_path=(*self.field_path, segment),
            base_dir=self.base_dir if base_dir is None else base_dir,
        )

    def item(self, index: int) -> LoadContext:
        return self.child(f"[{index}]")

    def error(self, kind: ErrorKind, message: str) -> ConversionError:
        return ConversionError(kind, message, path=self.path)

    def record(self, err: ConversionError) -> None:
        if self.diagnostics is not None:
            self.diagnostics.append(FieldDiagnostic(path=err.path, kind=err.kind, message=err.message))
