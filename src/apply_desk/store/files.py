"""Resolution of file-backed resume assets under the resume directory."""

from pathlib import Path, PurePosixPath
from typing import Optional, Union

from apply_desk.utils.logging import get_logger

logger = get_logger(__name__)

# Prefixes under which stored paths refer to the shared resume directory
RESUME_URL_PREFIXES = ("/data/resumes/", "/resumes/")


class ResumeFiles:
    """Maps stored resume paths onto the configured resume directory.
    
    Stored paths come in several historical shapes: absolute paths from an
    older host, ``/data/resumes/<file>`` URLs, ``/resumes/<file>`` URLs, and
    paths relative to the project root. Everything except the last maps to a
    file name inside ``resume_dir``.
    """
    
    def __init__(self, resume_dir: Union[str, Path], project_root: Optional[Union[str, Path]] = None):
        self.resume_dir = Path(resume_dir)
        self.project_root = Path(project_root) if project_root else Path.cwd()
    
    def ensure_dir(self) -> Path:
        """Create the resume directory if it is absent."""
        self.resume_dir.mkdir(parents=True, exist_ok=True)
        logger.debug("Resume directory ready", path=str(self.resume_dir))
        return self.resume_dir
    
    def resolve(self, stored_path: Optional[str]) -> Optional[Path]:
        """Resolve a stored path to a local file path, or None for empty input."""
        if not stored_path:
            return None
        
        normalized = stored_path.replace("\\", "/")
        
        if normalized.startswith(RESUME_URL_PREFIXES):
            return self.resume_dir / PurePosixPath(normalized).name
        
        if Path(stored_path).is_absolute() or PurePosixPath(normalized).is_absolute():
            return self.resume_dir / PurePosixPath(normalized).name
        
        relative = normalized[2:] if normalized.startswith("./") else normalized
        return self.project_root / relative
    
