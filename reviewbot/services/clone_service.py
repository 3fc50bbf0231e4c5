"""Service for cloning target repositories and running local git operations."""

import asyncio
import logging
import os
import re
import shutil
import stat
import tempfile

from reviewbot.config import get_settings
from reviewbot.errors import CloneError

logger = logging.getLogger(__name__)


class CloneService:
    """Clones repositories into a working directory owned by one run."""

    SOURCE_EXTENSIONS = {".js", ".mjs", ".ts"}
    SKIP_DIRS = {"node_modules", ".git", "dist", "build", "coverage"}

    # Patterns to redact from error messages
    TOKEN_PATTERNS = [
        r'ghp_[a-zA-Z0-9]{36,}',
        r'github_pat_[a-zA-Z0-9_]{22,}',
        r'ghu_[a-zA-Z0-9]{36,}',
        r'ghs_[a-zA-Z0-9]{36,}',
        r'gho_[a-zA-Z0-9]{36,}',
    ]

    URL_PATTERNS = [
        r"github\.com[/:]([^/\s]+)/([^/\s]+?)(?:\.git)?/?$",
    ]

    def __init__(self, base_dir: str | None = None, token: str | None = None):
        settings = get_settings()
        self.base_dir = os.path.abspath(base_dir or settings.clone_dir)
        self.token = token if token is not None else settings.github_token
        self.timeout = settings.clone_timeout
        self.author_name = settings.git_author_name
        self.author_email = settings.git_author_email

    # =========================================================================
    # Repository locators
    # =========================================================================

    @classmethod
    def parse_github_url(cls, url: str) -> tuple[str, str]:
        """Extract owner and repo name from a GitHub URL.

        Accepts https://github.com/owner/repo(.git), github.com/owner/repo
        and git@github.com:owner/repo.git.
        """
        for pattern in cls.URL_PATTERNS:
            match = re.search(pattern, url.strip())
            if match:
                return match.group(1), match.group(2)
        raise CloneError(f"Invalid GitHub URL: {url}")

    def _sanitize_error(self, error: str) -> str:
        """Remove tokens and sensitive data from error messages."""
        sanitized = error
        if self.token:
            sanitized = sanitized.replace(self.token, "[REDACTED]")
        for pattern in self.TOKEN_PATTERNS:
            sanitized = re.sub(pattern, '[REDACTED]', sanitized)
        sanitized = re.sub(r'://[^:/]+:[^@]+@', '://[REDACTED]@', sanitized)
        return sanitized

    # =========================================================================
    # Git plumbing
    # =========================================================================

    def _create_askpass_script(self) -> str:
        """Create temporary GIT_ASKPASS script that echoes the token."""
        fd, script_path = tempfile.mkstemp(prefix="git_askpass_", suffix=".sh")
        try:
            os.write(fd, f'#!/bin/sh\necho "{self.token}"\n'.encode())
        finally:
            os.close(fd)
        os.chmod(script_path, stat.S_IRWXU)
        return script_path

    async def _run_git(self, *args: str, cwd: str | None = None) -> str:
        """Run a git command and return stdout; raises CloneError on failure."""
        env = os.environ.copy()
        env["GIT_TERMINAL_PROMPT"] = "0"

        askpass_script_path = None
        try:
            if self.token:
                askpass_script_path = self._create_askpass_script()
                env["GIT_ASKPASS"] = askpass_script_path

            # Using create_subprocess_exec (safe - args as list, no shell)
            process = await asyncio.create_subprocess_exec(
                "git", *args,
                cwd=cwd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=env,
            )
            try:
                stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
            except asyncio.TimeoutError:
                process.kill()
                await process.wait()
                raise CloneError(f"git {args[0]} timed out after {self.timeout} seconds")

            if process.returncode != 0:
                error_msg = stderr.decode("utf-8", errors="replace").strip()
                raise CloneError(f"git {args[0]} failed: {self._sanitize_error(error_msg)}")

            return stdout.decode("utf-8", errors="replace").strip()

        finally:
            if askpass_script_path and os.path.exists(askpass_script_path):
                os.remove(askpass_script_path)

    # =========================================================================
    # Clone lifecycle
    # =========================================================================

    def target_dir(self, owner: str, repo: str) -> str:
        return os.path.join(self.base_dir, f"{owner}-{repo}")

    async def clone_repo(self, repo_url: str) -> str:
        """Clone a repository into a fresh working directory.

        Security: Token is NEVER put in URL. Uses GIT_ASKPASS for auth.

        Args:
            repo_url: GitHub repository URL

        Returns:
            Path of the clone
        """
        owner, repo = self.parse_github_url(repo_url)
        clone_path = self.target_dir(owner, repo)
        clone_url = f"https://github.com/{owner}/{repo}.git"

        os.makedirs(self.base_dir, exist_ok=True)
        if os.path.exists(clone_path):
            logger.info(f"Removing existing clone at {clone_path}")
            self.cleanup(clone_path)

        logger.info(f"Cloning {owner}/{repo} to {clone_path}")
        try:
            await self._run_git("clone", "--depth", "1", clone_url, clone_path)
        except CloneError as e:
            self.cleanup(clone_path)
            raise CloneError(f"Failed to clone repository: {e}") from e
        return clone_path

    def list_source_files(self, repo_path: str) -> list[str]:
        """List JS/TS source files, skipping vendored and build directories."""
        files = []
        for root, dirs, filenames in os.walk(repo_path):
            dirs[:] = sorted(d for d in dirs if d not in self.SKIP_DIRS)
            for filename in sorted(filenames):
                if os.path.splitext(filename)[1] in self.SOURCE_EXTENSIONS:
                    files.append(os.path.join(root, filename))
        logger.debug(f"Found {len(files)} source file(s) in {repo_path}")
        return files

    async def checkout_pull_request(self, repo_path: str, pr_number: int) -> None:
        """Fetch a PR head (forks included) and check it out."""
        branch = f"pr-{pr_number}"
        await self._run_git(
            "fetch", "--depth", "1", "origin", f"pull/{pr_number}/head:{branch}",
            cwd=repo_path,
        )
        await self._run_git("checkout", branch, cwd=repo_path)

    async def create_branch(self, repo_path: str, branch: str) -> None:
        await self._run_git("checkout", "-b", branch, cwd=repo_path)

    async def commit_all(self, repo_path: str, message: str) -> None:
        await self._run_git("add", ".", cwd=repo_path)
        await self._run_git(
            "-c", f"user.name={self.author_name}",
            "-c", f"user.email={self.author_email}",
            "commit", "-m", message,
            cwd=repo_path,
        )

    async def push(self, repo_path: str, branch: str) -> None:
        await self._run_git("push", "--force", "origin", branch, cwd=repo_path)

    def cleanup(self, clone_path: str) -> None:
        """Delete a cloned repository."""
        clone_path = os.path.abspath(clone_path)
        if os.path.commonpath([clone_path, self.base_dir]) != self.base_dir or clone_path == self.base_dir:
            logger.warning(f"Refusing to delete path outside clone directory: {clone_path}")
            return

        if os.path.exists(clone_path):
            shutil.rmtree(clone_path)
            logger.info(f"Cleaned up {clone_path}")

    def cleanup_all(self) -> int:
        """Delete every clone under the base directory. Returns count deleted."""
        if not os.path.isdir(self.base_dir):
            return 0

        deleted = 0
        for item in os.listdir(self.base_dir):
            item_path = os.path.join(self.base_dir, item)
            if os.path.isdir(item_path):
                self.cleanup(item_path)
                deleted += 1
        return deleted
