"""
Page Manager for PAGESMITH.

Pages are plain *.html files inside the sites directory. The sites
directory is its own git repository:
- <page>.html        the editable page
- changes/<page>.json  log of the visual edits committed for that page
- .git/              history of every commit
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from src.config import get_sites_path
from src.git_manager import GitError, GitManager
from src.paths import ensure_sites_dir

logger = logging.getLogger(__name__)

PAGE_SUFFIX = ".html"
CHANGES_DIR = "changes"
INVALID_CHARS = '<>:"/\\|?*'

STARTER_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <title>{title}</title>
</head>
<body>
  <header>
    <nav><a href="#">Home</a> <a href="#about">About</a></nav>
  </header>
  <main>
    <section>
      <h1>{title}</h1>
      <p>Double-click this text to edit it in place.</p>
      <button>Call to action</button>
    </section>
  </main>
  <footer><small>Made with PAGESMITH</small></footer>
</body>
</html>
"""


def get_pages_dir(sites_dir: Optional[Path] = None) -> Path:
    """Get the base directory containing all pages."""
    return Path(sites_dir) if sites_dir else get_sites_path()


def validate_page_name(page_name: str) -> str:
    """Return the cleaned page name, raising ValueError if it is not usable."""
    name = (page_name or '').strip()
    if name.endswith(PAGE_SUFFIX):
        name = name[:-len(PAGE_SUFFIX)]
    if not name:
        raise ValueError("Page name cannot be empty")
    if any(c in name for c in INVALID_CHARS) or name.startswith('.'):
        raise ValueError(f"Page name cannot start with '.' or contain: {INVALID_CHARS}")
    return name


def get_page_path(page_name: str, sites_dir: Optional[Path] = None) -> Path:
    """Get the full path to a page file."""
    return get_pages_dir(sites_dir) / f"{validate_page_name(page_name)}{PAGE_SUFFIX}"


def get_changes_path(page_name: str, sites_dir: Optional[Path] = None) -> Path:
    """Get the path of a page's change log."""
    return get_pages_dir(sites_dir) / CHANGES_DIR / f"{validate_page_name(page_name)}.json"


def list_pages(sites_dir: Optional[Path] = None) -> List[str]:
    """
    List all available pages.

    Returns a sorted list of page names (file names without .html).
    """
    base = get_pages_dir(sites_dir)
    if not base.exists():
        base.mkdir(parents=True, exist_ok=True)
        return []
    return sorted(p.stem for p in base.glob(f"*{PAGE_SUFFIX}") if p.is_file() and not p.name.startswith('.'))


def page_exists(page_name: str, sites_dir: Optional[Path] = None) -> bool:
    """Check if a page exists."""
    try:
        return get_page_path(page_name, sites_dir).is_file()
    except ValueError:
        return False


def load_page(page_name: str, sites_dir: Optional[Path] = None) -> str:
    """Read a page's HTML. Raises FileNotFoundError for unknown pages."""
    return get_page_path(page_name, sites_dir).read_text(encoding='utf-8')


def save_page(page_name: str, html: str, sites_dir: Optional[Path] = None) -> Path:
    """Write a page's HTML and return its path."""
    path = get_page_path(page_name, sites_dir)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(html, encoding='utf-8')
    return path


def ensure_site_repo(sites_dir: Optional[Path] = None, git_manager: Optional[GitManager] = None) -> GitManager:
    """Make sure the sites directory exists and is a git repository."""
    base = ensure_sites_dir(get_pages_dir(sites_dir))
    git_manager = git_manager or GitManager(repo_path=str(base))
    try:
        git_manager.init_repo()
    except GitError as e:
        # Pages stay editable; commits will report the problem
        logger.warning(f"Sites directory {base} is not under git: {e}")
    return git_manager


def create_page(
    page_name: str,
    title: Optional[str] = None,
    sites_dir: Optional[Path] = None,
    git_manager: Optional[GitManager] = None,
) -> Dict[str, Any]:
    """
    Create a new page from the starter template and commit it.

    Returns:
        Dict with 'success' (bool), 'message' (str), and optionally 'page_path'
    """
    try:
        name = validate_page_name(page_name)
    except ValueError as e:
        return {'success': False, 'message': str(e)}

    if page_exists(name, sites_dir):
        return {'success': False, 'message': f'Page "{name}" already exists'}

    title = (title or '').strip() or name.replace('-', ' ').replace('_', ' ').title()
    try:
        path = save_page(name, STARTER_TEMPLATE.format(title=title), sites_dir)
    except OSError as e:
        logger.error(f"Failed to create page {name}: {e}")
        return {'success': False, 'message': f'Failed to create page: {e}'}

    if git_manager is not None:
        try:
            git_manager.commit_paths([path.name], f'Create page {name}')
        except GitError as e:
            logger.warning(f"Page {name} created but not committed: {e}")

    logger.info(f"Created page '{name}'")
    return {'success': True, 'message': f'Page "{name}" created successfully', 'page_path': str(path)}
