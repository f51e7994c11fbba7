# Module for committing the refreshed archive and pushing it to the hosting repository

import logging
import subprocess
from datetime import datetime, timezone

import constants

GIT_USER_NAME = "github-actions[bot]"
GIT_USER_EMAIL = "github-actions[bot]@users.noreply.github.com"


def _redact(text, token):
    return text.replace(token, "***") if token and text else text


def _run_git(args, cwd):
    return subprocess.run(["git", *args], cwd=cwd, check=True, capture_output=True, text=True)


def has_staged_changes(cwd="."):
    # --quiet exits with 1 when there are differences
    result = subprocess.run(["git", "diff", "--cached", "--quiet"], cwd=cwd)
    return result.returncode == 1


def publish_archive(config, paths, cwd="."):
    """
    Stages the given paths, commits them when anything changed and pushes to
    config['repository'] on config['branch']. Returns True on success; failures are logged.
    """
    token = config['github_token']
    repository = config['repository']
    branch = config.get('branch', constants.DEFAULT_BRANCH)
    push_url = constants.GIT_PUSH_URL_TEMPLATE.format(token=token, repository=repository)
    message = f"{constants.DEFAULT_COMMIT_MESSAGE} ({datetime.now(timezone.utc).strftime(constants.DATE_FORMAT)})"

    try:
        _run_git(["add", "--", *paths], cwd)
        if not has_staged_changes(cwd):
            logging.info("No changes to publish.")
            return True
        _run_git(["-c", f"user.name={GIT_USER_NAME}", "-c", f"user.email={GIT_USER_EMAIL}", "commit", "-m", message], cwd)
        _run_git(["push", push_url, f"HEAD:{branch}"], cwd)
    except subprocess.CalledProcessError as e:
        command = _redact(" ".join(str(part) for part in e.cmd), token)
        logging.error(f"Publishing failed while running '{command}': {_redact(e.stderr or '', token).strip()}")
        return False
    except FileNotFoundError:
        logging.error("Publishing failed: git is not installed.")
        return False

    logging.info(f"Published archive to {repository} ({branch}).")
    return True
