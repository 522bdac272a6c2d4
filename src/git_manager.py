import logging
import subprocess
from typing import Callable, Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)

# Separates fields in `git log` output; never appears in commit subjects
_FIELD_SEP = '\x1f'


class GitError(Exception):
    """A failed git command, with the operation name and git's own output."""
    def __init__(self, message: str, operation: str, stderr: str = "", returncode: int = 0):
        self.operation = operation
        self.stderr = stderr
        self.returncode = returncode
        super().__init__(message)


def _output(e: subprocess.CalledProcessError) -> str:
    return (e.stderr or '').strip() or (e.stdout or '').strip() or str(e)


def _nothing_to_commit(e: subprocess.CalledProcessError) -> bool:
    text = f"{e.stdout or ''}\n{e.stderr or ''}".lower()
    return e.returncode == 1 and ('nothing to commit' in text or 'no changes added to commit' in text)


class GitManager:
    """
    Git plumbing for the sites repository.

    Every page commit is `stage_paths` + `commit` (+ `push` when auto push
    is on); `commit_paths` runs the three and returns the new HEAD.
    Failures raise GitError and are also collected for `get_errors`.
    """

    def __init__(self, repo_path: Optional[str] = None, on_error: Optional[Callable[[str, str], None]] = None):
        """
        :param repo_path: Working tree to run git in (current directory when None).
        :param on_error: Called with (title, message) for every reported failure.
        """
        self.repo_path = str(repo_path) if repo_path is not None else None
        self._on_error = on_error
        self._errors: List[str] = []

    def _report(self, title: str, message: str):
        entry = f"{title}: {message}"
        self._errors.append(entry)
        logger.warning(entry)
        if self._on_error:
            self._on_error(title, message)

    def get_errors(self) -> List[str]:
        """Reported failures since the last call."""
        errors, self._errors = self._errors, []
        return errors

    def _git(self, *args: str) -> subprocess.CompletedProcess:
        """Run `git <args>` in the repository; raises CalledProcessError on a non-zero exit."""
        return subprocess.run(
            ['git', *args],
            cwd=self.repo_path,
            check=True,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
        )

    def _fail(self, operation: str, title: str, summary: str, e: subprocess.CalledProcessError) -> GitError:
        detail = _output(e)
        self._report(title, f"{summary}: {detail}")
        return GitError(f"{summary}: {detail}", operation, e.stderr, e.returncode)

    def is_repo(self) -> bool:
        try:
            self._git('rev-parse', '--is-inside-work-tree')
        except (subprocess.CalledProcessError, FileNotFoundError):
            return False
        return True

    def get_config(self, key: str) -> Optional[str]:
        try:
            return self._git('config', key).stdout.strip()
        except subprocess.CalledProcessError:
            return None

    def init_repo(self, default_name: str = 'PAGESMITH', default_email: str = 'pagesmith@localhost') -> bool:
        """
        Turn the sites directory into a repository, with a local identity if
        none is configured. Returns False when it already was one.
        """
        if self.is_repo():
            return False
        try:
            self._git('init')
            for key, default in (('user.name', default_name), ('user.email', default_email)):
                if not self.get_config(key):
                    self._git('config', key, default)
        except subprocess.CalledProcessError as e:
            raise self._fail('init_repo', "Git Init Failed", "Init failed", e)
        logger.info(f"Initialised git repository in {self.repo_path}")
        return True

    def stage_paths(self, paths: Iterable[str]):
        paths = [str(p) for p in paths]
        if not paths:
            return None
        try:
            return self._git('add', '--', *paths)
        except subprocess.CalledProcessError as e:
            raise self._fail('stage_paths', "Git Stage Failed", "Staging failed", e)

    def commit(self, message: str):
        """Commit the index. Returns None when git had nothing to commit."""
        try:
            return self._git('commit', '-m', message)
        except subprocess.CalledProcessError as e:
            if _nothing_to_commit(e):
                logger.info("Nothing to commit")
                return None
            raise self._fail('commit', "Git Commit Failed", "Commit failed", e)

    def push(self):
        """Push the current branch, setting its upstream on the first push."""
        try:
            return self._git('push')
        except subprocess.CalledProcessError as first_error:
            logger.info(f"Plain push failed ({_output(first_error)}), retrying with upstream")

        try:
            branch = self._git('branch', '--show-current').stdout.strip()
            if branch:
                return self._git('push', '-u', 'origin', branch)
        except subprocess.CalledProcessError as e:
            raise self._fail('push', "Git Push Failed", "Push failed", e)
        self._report("Git Push Failed", "no current branch")
        raise GitError("Push failed: no current branch", "push")

    def head(self) -> Optional[str]:
        """Current HEAD hash, None in a repository without commits."""
        try:
            return self._git('rev-parse', 'HEAD').stdout.strip() or None
        except subprocess.CalledProcessError:
            return None

    def commit_paths(self, paths: Iterable[str], message: str, push: bool = False) -> Optional[str]:
        """
        Stage `paths`, commit them and optionally push.
        Returns the new HEAD hash, or None if there was nothing to commit.
        """
        self.stage_paths(paths)
        if self.commit(message) is None:
            return None
        if push:
            self.push()
        return self.head()

    def get_commit_history(self, limit: int = 20) -> List[Dict[str, str]]:
        """Newest first; each entry has 'hash', 'author', 'date' (ISO 8601) and 'message'."""
        fmt = _FIELD_SEP.join(['%H', '%an', '%aI', '%s'])
        try:
            res = self._git('log', f'-n{int(limit)}', f'--pretty=format:{fmt}')
        except subprocess.CalledProcessError as e:
            # 128: repository without commits yet
            if e.returncode != 128:
                self._report("Git Log Failed", _output(e))
            return []

        history = []
        for line in res.stdout.splitlines():
            parts = line.split(_FIELD_SEP)
            if len(parts) == 4:
                history.append(dict(zip(('hash', 'author', 'date', 'message'), parts)))
        return history

    def validate_setup(self) -> dict:
        """Returns {'ok': bool, 'issues': [str]} describing what would block commits or pushes."""
        if not self.is_repo():
            return {'ok': False, 'issues': ['Not a valid git repository']}

        issues = [f'Git {key} not configured' for key in ('user.name', 'user.email') if not self.get_config(key)]
        try:
            self._git('remote', 'get-url', 'origin')
        except subprocess.CalledProcessError:
            issues.append('No remote "origin" configured')
        return {'ok': not issues, 'issues': issues}
