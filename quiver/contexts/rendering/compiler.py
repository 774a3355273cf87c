"""
LaTeX Compilation Module

Compiles rendered document text to PDF with the configured LaTeX compiler
and reports errors, warnings and the resulting page count.
"""

import os
import re
import shutil
import subprocess
import tempfile
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from quiver.contexts.rendering.logger import _log_debug, log_compilation_result
from quiver.utils.pdf_processing import page_count

load_dotenv()

LATEX_COMPILER = os.getenv("LATEX_COMPILER", "pdflatex")
DOCUMENT_STEM = "resume"


@dataclass
class CompilationResult:
    """
    Result of LaTeX compilation.

    Attributes:
        success: Whether compilation succeeded
        pdf_path: Path to generated PDF (None if failed or compiled in a temp dir)
        stdout: Standard output from the compiler
        stderr: Standard error from the compiler
        errors: List of parsed LaTeX errors
        warnings: List of parsed LaTeX warnings
        page_count: Number of pages in generated PDF (None if not available)
    """

    success: bool
    pdf_path: Optional[Path] = None
    stdout: str = ""
    stderr: str = ""
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    page_count: Optional[int] = None


def compiler_available(compiler: str = LATEX_COMPILER) -> bool:
    return shutil.which(compiler) is not None


def _parse_latex_log(log_content: str) -> tuple[List[str], List[str]]:
    """
    Parse LaTeX log file for errors and warnings.

    Returns:
        Tuple of (errors, warnings)
    """
    errors = []
    warnings = []

    # LaTeX error pattern: "! Error message"
    error_pattern = re.compile(r"^! (.+)$", re.MULTILINE)
    for match in error_pattern.finditer(log_content):
        errors.append(match.group(1).strip())

    additional_error_patterns = [
        r"Undefined control sequence",
        r"File ended while scanning use of",
        r"Emergency stop",
    ]
    for pattern in additional_error_patterns:
        match = re.search(rf"({pattern}.*?)$", log_content, re.MULTILINE)
        if match and match.group(1) not in errors:
            errors.append(match.group(1))

    warning_patterns = [
        r"LaTeX Warning: (.+)",
        r"Package \w+ Warning: (.+)",
        r"Overfull \\hbox \((.+)\)",
        r"Underfull \\hbox \((.+)\)",
    ]
    for pattern in warning_patterns:
        for match in re.finditer(pattern, log_content, re.MULTILINE):
            warnings.append(match.group(1).strip())

    return errors, warnings


def _run_compiler(tex_file: Path, compile_dir: Path, num_passes: int, compiler: str) -> CompilationResult:
    all_stdout = []
    all_stderr = []
    success = True

    # Second pass resolves references
    for _ in range(num_passes):
        result = subprocess.run(
            [compiler, "-interaction=nonstopmode", "-file-line-error", tex_file.name],
            cwd=compile_dir,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
        )
        all_stdout.append(result.stdout)
        all_stderr.append(result.stderr)
        if result.returncode != 0:
            success = False
            break

    errors: List[str] = []
    warnings: List[str] = []
    log_file = compile_dir / f"{tex_file.stem}.log"
    if log_file.exists():
        # LaTeX logs are latin-1 (font metadata is not valid UTF-8)
        errors, warnings = _parse_latex_log(log_file.read_text(encoding="latin-1"))

    pdf_path = compile_dir / f"{tex_file.stem}.pdf"
    if not pdf_path.exists():
        success = False
        if not errors:
            errors.append("PDF file was not generated")
    elif not errors:
        # A PDF with no parsed errors counts as success even on a non-zero exit
        success = True

    return CompilationResult(
        success=success,
        pdf_path=pdf_path if pdf_path.exists() else None,
        stdout="\n".join(all_stdout),
        stderr="\n".join(all_stderr),
        errors=errors,
        warnings=warnings,
        page_count=page_count(pdf_path) if pdf_path.exists() else None,
    )


def compile_document(
    text: str,
    output_dir: Optional[Path] = None,
    num_passes: int = 2,
    compiler: str = LATEX_COMPILER,
    verbose: bool = False,
) -> CompilationResult:
    """
    Compile LaTeX document text to PDF.

    Args:
        text: Full LaTeX document
        output_dir: Directory to keep the .tex/.pdf in (default: a temp dir that is removed)
        num_passes: Number of compiler passes
        compiler: Compiler executable (default: LATEX_COMPILER env, else pdflatex)
        verbose: Log full compiler output

    Raises:
        FileNotFoundError: If the compiler is not on PATH
    """
    if not compiler_available(compiler):
        raise FileNotFoundError(f"LaTeX compiler not found on PATH: {compiler}")

    start_time = time.time()
    if output_dir is not None:
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        tex_file = output_dir / f"{DOCUMENT_STEM}.tex"
        tex_file.write_text(text, encoding="utf-8")
        result = _run_compiler(tex_file, output_dir, num_passes, compiler)
    else:
        with tempfile.TemporaryDirectory(prefix="quiver-compile-") as tmp:
            compile_dir = Path(tmp)
            tex_file = compile_dir / f"{DOCUMENT_STEM}.tex"
            tex_file.write_text(text, encoding="utf-8")
            result = _run_compiler(tex_file, compile_dir, num_passes, compiler)
            result.pdf_path = None

    log_compilation_result(result, time.time() - start_time, verbose=verbose)
    _log_debug(f"  Compiler: {compiler}, passes: {num_passes}")
    return result
