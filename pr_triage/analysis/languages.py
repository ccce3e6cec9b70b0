"""Filename to language mapping."""

from pathlib import PurePosixPath

_EXTENSIONS = {
    "js": "javascript",
    "jsx": "javascript",
    "mjs": "javascript",
    "cjs": "javascript",
    "ts": "typescript",
    "tsx": "typescript",
    "py": "python",
    "java": "java",
    "cpp": "cpp",
    "cc": "cpp",
    "cxx": "cpp",
    "c": "c",
    "go": "go",
    "rs": "rust",
    "php": "php",
    "rb": "ruby",
    "json": "json",
    "md": "markdown",
}

CODE_EXTENSIONS = (
    ".js", ".ts", ".jsx", ".tsx", ".py", ".java", ".cpp", ".c",
    ".go", ".rs", ".php", ".rb",
)


def language_for(filename: str) -> str:
    """Language name for a path, ``text`` when the extension is unknown."""
    suffix = PurePosixPath(filename).suffix.lower().lstrip(".")
    return _EXTENSIONS.get(suffix, "text")


def is_code_file(filename: str) -> bool:
    return filename.endswith(CODE_EXTENSIONS)


def line_comment_prefix(filename: str) -> str:
    """Token that starts a single-line comment in the file's language."""
    if language_for(filename) in ("python", "ruby") or filename.endswith((".sh", ".yml", ".yaml", ".toml")):
        return "#"
    return "//"
