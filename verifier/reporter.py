"""
Reporting of verification results to GitHub.

Posts check-run annotations and rewrites release descriptions. Reporting
is best-effort: failures are logged and never end the run.
"""

from . import console
from .config import ANNOTATION_PATH
from .config_loader import TriggerContext
from .github_client import GitHubClient


class Reporter:
    """
    Posts annotations and release updates for the triggering repository.
    """

    def __init__(self, client: GitHubClient, context: TriggerContext) -> None:
        self.client = client
        self.context = context

    def annotate(self, title: str, summary: str, level: str, conclusion: str) -> bool:
        """
        Add a completed check run with a single annotation to the run's commit.

        Args:
            title: Check run and annotation title.
            summary: Annotation message.
            level: notice, warning, or failure.
            conclusion: action_required, cancelled, failure, neutral, success,
                skipped, stale, or timed_out.

        Returns:
            True if the annotation was posted.
        """
        payload = {
            "name": title,
            "head_sha": self.context.sha,
            "status": "completed",
            "conclusion": conclusion,
            "output": {
                "title": title,
                "summary": summary,
                "annotations": [
                    {
                        "path": ANNOTATION_PATH,
                        "start_line": 1,
                        "end_line": 1,
                        "annotation_level": level,
                        "message": summary,
                        "title": title,
                    }
                ],
            },
        }

        try:
            check_run = self.client.create_check_run(self.context.organization, self.context.repository, payload)
        except Exception as e:
            console.warning(f'Unable to add "{title}" annotation. {e}')
            return False

        console.debug(f"Annotation added at: {check_run.get('html_url')}")
        return True

    def update_release(self, tag: str, body: str) -> bool:
        """
        Replace the description of the release for tag.

        Returns:
            True if the release was updated.
        """
        owner, repo = self.context.organization, self.context.repository
        try:
            release = self.client.get_release_by_tag(owner, repo, tag)
            self.client.update_release(owner, repo, release["id"], body)
        except Exception as e:
            console.info(f"Unable to update the {tag} release. {e}")
            return False

        console.info(f"Updated the {tag} release.")
        return True
