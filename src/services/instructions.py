"""Natural-language instructions for agent sessions.

Each builder embeds every task parameter the result extraction depends on
(flag keys, target behavior, registry paths, expected output shape) and
tells the agent never to reveal the credentials injected into its
environment. Output is deterministic for a given task.
"""

from src.models import AnalyzeTask, RemoveTask

CREDENTIALS_NOTICE = (
    "SECURITY: Credentials (for example GITHUB_TOKEN) are injected into your "
    "environment. Never print, echo, log, commit or otherwise reveal any "
    "credential, token or secret, in messages, files, commits or pull requests."
)

ANALYSIS_OUTPUT_SHAPE = """{
  "flags": [
    {
      "key": "flag_name",
      "references": [{"file": "path", "line": 123, "context": "code snippet"}],
      "reference_count": 5,
      "affected_files": ["file1.ts", "file2.ts"],
      "risk_level": "low",
      "confidence": 0.95,
      "recommendation": "Safe to remove - all references are simple conditionals"
    }
  ],
  "summary": {
    "total_flags": 1,
    "total_references": 5,
    "estimated_effort_hours": 2
  }
}"""

REMOVAL_OUTPUT_SHAPE = """{
  "pr_url": "https://github.com/owner/repo/pull/123",
  "branch": "remove-flag-name",
  "commit_message": "Remove flag_name feature flag",
  "summary": {
    "flags_removed": ["flag_name"],
    "files_modified": 4,
    "references_removed": 7,
    "tests_passed": true
  }
}"""

REMOVAL_FAILURE_SHAPE = """{
  "branch": "remove-flag-name",
  "diff": "<unified diff of your changes>",
  "summary": {"flags_removed": [], "files_modified": 0, "references_removed": 0, "tests_passed": false},
  "errors": ["what went wrong"]
}"""


def _optional_line(label: str, value: str | None) -> str:
    return f"{label}: {value}\n" if value else ""


def build_analyze_instruction(task: AnalyzeTask) -> str:
    """Build the instruction for an analyze-only session."""
    repo = task.repo
    patterns = ", ".join(task.file_patterns) if task.file_patterns else None
    return (
        "You are an autonomous engineer analyzing deprecated feature flags. "
        "This is an ANALYZE-ONLY task - do not make any changes to the repository.\n\n"
        f"Repository: {repo.full_name}\n"
        f"Branch: {repo.branch}\n"
        f"{_optional_line('Working Directory', task.working_dir)}"
        f"\nFlags to analyze: {', '.join(task.flag_keys)}\n"
        f"{_optional_line('File patterns to search', patterns)}"
        "\nFor each flag, provide:\n"
        "1. All references in the codebase (file paths, line numbers, surrounding context)\n"
        "2. Count of total references\n"
        "3. List of affected files\n"
        "4. Risk assessment (low/medium/high)\n"
        "5. Confidence score (0-1)\n"
        "6. Recommendation for removal\n\n"
        "When you are done, post your analysis as a single ```json fenced code block "
        "containing a JSON object with this structure:\n"
        f"{ANALYSIS_OUTPUT_SHAPE}\n\n"
        f"{CREDENTIALS_NOTICE}\n\n"
        "DO NOT make any changes to files. Only analyze and report."
    )


def build_remove_instruction(task: RemoveTask) -> str:
    """Build the instruction for a flag removal session."""
    repo = task.repo
    inline_value = "true (enabled)" if task.target_behavior.value == "on" else "false (disabled)"
    return (
        "You are an autonomous engineer removing deprecated feature flags and "
        "opening a pull request with the change.\n\n"
        f"Repository: {repo.full_name}\n"
        f"Base branch: {repo.branch}\n"
        f"{_optional_line('Working Directory', task.working_dir)}"
        f"\nFlags to remove: {', '.join(task.flag_keys)}\n"
        f"Target behavior: {task.target_behavior.value} - inline every check of these "
        f"flags as {inline_value} and delete the dead branch.\n"
        f"Registry files to update: {', '.join(task.registry_file_paths)} - remove the "
        "flag entries from each of these files.\n"
        f"{_optional_line('Test command', task.test_command)}"
        f"{_optional_line('Build command', task.build_command)}"
        "\nSteps:\n"
        "1. Create a new branch from the base branch\n"
        "2. Replace every flag check with the target behavior and remove unreachable code\n"
        "3. Remove the flag entries from the registry files\n"
        "4. Run the build and test commands if provided; fix any failures you introduced\n"
        "5. Commit with a descriptive message and open a pull request against the base branch\n\n"
        "When you are done, post the outcome as a single ```json fenced code block. "
        "On success use this structure:\n"
        f"{REMOVAL_OUTPUT_SHAPE}\n\n"
        "If you could not open a pull request, omit pr_url and instead include the diff "
        "and the errors that stopped you:\n"
        f"{REMOVAL_FAILURE_SHAPE}\n\n"
        f"{CREDENTIALS_NOTICE}"
    )


def build_instruction(task: AnalyzeTask | RemoveTask) -> str:
    """Dispatch to the builder for the task's kind."""
    if isinstance(task, RemoveTask):
        return build_remove_instruction(task)
    return build_analyze_instruction(task)
