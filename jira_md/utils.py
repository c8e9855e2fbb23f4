import os
import re
import subprocess
import tempfile
import singer
from singer import utils

LOGGER = singer.get_logger()

REQUIRED_CONFIG_KEYS = ["email", "token", "subdomain", "project"]

ENV_CONFIG_KEYS = {
    "email": "JIRA_EMAIL",
    "token": "JIRA_TOKEN",
    "subdomain": "JIRA_SUBDOMAIN",
    "project": "JIRA_PROJECT",
}

ISSUE_KEY_RE = re.compile(r"^[A-Z][A-Z0-9]*-\d+$")
ISSUE_NUMBER_RE = re.compile(r"^\d+$")

# Transition ids of the default Jira Software workflow. Sites with a custom
# workflow will have different ids.
TRANSITIONS = {
    "todo": 11,
    "in-progress": 21,
    "done": 31,
    "closed": 41,
    "review": 51,
}

ISSUE_TYPES = ["Task", "Bug", "Story", "Sub-task", "Epic"]

# Only these issue types can live under an epic
EPIC_CHILD_TYPES = ["Task", "Bug", "Story"]

CREATE_ISSUE_TEMPLATE = """
# Write the issue title on the first line and its description below it.
# Lines starting with '#' are ignored, description is markdown.
# Leave the title empty to abort.
"""


class InvalidIssueKey(ValueError):
    pass


def canonical_issue_key(issue, project):
    """Turn `ABC-123` or `123` into a full issue key for `project`."""
    issue = issue.strip()
    if ISSUE_KEY_RE.match(issue):
        return issue
    if ISSUE_NUMBER_RE.match(issue):
        return "{}-{}".format(project, issue)
    raise InvalidIssueKey("Invalid issue key: {!r}".format(issue))


def transition_id(name):
    try:
        return TRANSITIONS[name]
    except KeyError:
        raise ValueError("Invalid status {!r}, expected one of: {}".format(
            name, ", ".join(sorted(TRANSITIONS)))) from None


def load_config(config_path=None, overrides=None, environ=None):
    """Merge the config file, JIRA_* environment variables and command line
    overrides (in increasing priority) and check the required keys."""
    environ = os.environ if environ is None else environ
    config = utils.load_json(config_path) if config_path else {}

    for key, variable in ENV_CONFIG_KEYS.items():
        if environ.get(variable):
            config[key] = environ[variable]

    for key, value in (overrides or {}).items():
        if value is not None:
            config[key] = value

    utils.check_config(config, REQUIRED_CONFIG_KEYS)
    return config


def split_title_and_description(contents):
    """First non-comment line is the title, everything after is the
    description. Returns None when there is no title."""
    lines = [line for line in contents.split("\n") if not line.startswith("#")]
    while lines and not lines[0].strip():
        lines.pop(0)
    if not lines:
        return None
    return lines[0].strip(), "\n".join(lines[1:]).strip()


def text_from_editor(template=CREATE_ISSUE_TEMPLATE, editor=None):
    editor = editor or os.environ.get("EDITOR", "nano")
    fd, path = tempfile.mkstemp(suffix=".md")
    try:
        with os.fdopen(fd, "w") as handle:
            handle.write(template)
        LOGGER.debug("Opening %s with %s", path, editor)
        subprocess.run([editor, path], check=True)
        with open(path) as handle:
            return split_title_and_description(handle.read())
    finally:
        os.remove(path)
