#!/usr/bin/env python3
import argparse
import json
import sys
import webbrowser
import singer
from . import utils
from .convert import description_to_adf, markdown_to_adf
from .http import Client
from .jira_utils.flatten_description import flatten_description

LOGGER = singer.get_logger()

SEARCHES = {
    "me": "assignee = currentUser() AND (status != Closed AND status != Done)",
    "backlog": "project = {project} AND sprint is EMPTY AND (status != Closed AND status != Done)",
    "epics": "project = {project} AND issuetype = Epic AND status not in (Closed, Done) ORDER BY updated ASC",
    "sprint": "project = {project} AND sprint in openSprints()",
}

CHILDREN_SEARCH = "parent = {key}"


def get_args(argv=None):
    parser = argparse.ArgumentParser(prog="jira-md",
                                     description="Manage Jira issues, with markdown descriptions")
    parser.add_argument("-c", "--config", help="Config file")
    parser.add_argument("-d", "--subdomain", help="Your atlassian.net subdomain")
    parser.add_argument("-p", "--project", help="Scope the command to this Jira project")
    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True

    convert = subparsers.add_parser("convert", help="Print the ADF JSON of a markdown document")
    convert.add_argument("file", nargs="?", help="Markdown file, stdin when omitted")

    create = subparsers.add_parser("create", help="Create a Jira issue")
    create.add_argument("-t", "--title", help="Issue title")
    create.add_argument("-d", "--description", help="Issue description (markdown)")
    create.add_argument("-y", "--issue-type", dest="issue_type", default="Task",
                        choices=utils.ISSUE_TYPES, help="Issue type")
    create.add_argument("-l", "--label", dest="labels", action="append", default=[],
                        help="Issue label, repeatable")
    create.add_argument("-c", "--component", dest="components", action="append", default=[],
                        help="Issue component, repeatable")
    create.add_argument("-e", "--epic", help="Epic that this issue belongs to")
    create.add_argument("-p", "--parent", help="Parent issue (if creating a sub-task)")

    transition = subparsers.add_parser("transition", aliases=["t"],
                                       help="Change/transition issue status")
    transition.add_argument("issue", metavar="ISSUE_KEY")
    transition.add_argument("-t", "--transition-to", dest="transition", required=True,
                            choices=sorted(utils.TRANSITIONS), help="Status to transition to")

    take = subparsers.add_parser("take", help="Assign an issue to yourself")
    take.add_argument("issue", metavar="ISSUE_KEY")

    show = subparsers.add_parser("show", aliases=["s"], help="View a single issue")
    show.add_argument("issue", metavar="ISSUE_KEY")

    open_ = subparsers.add_parser("open", aliases=["o"], help="Open an issue in your browser")
    open_.add_argument("issue", metavar="ISSUE_KEY")

    list_ = subparsers.add_parser("list", help="List relevant issues")
    list_.add_argument("which", nargs="?", default="me", choices=sorted(SEARCHES))

    return parser.parse_args(argv)


def read_markdown(path):
    if path:
        with open(path, "rb") as handle:
            return handle.read()
    return sys.stdin.buffer.read()


def build_issue_fields(args, config):
    """Build the `fields` payload of an issue creation request."""
    project = config["project"]
    epic = utils.canonical_issue_key(args.epic, project) if args.epic else None
    parent = utils.canonical_issue_key(args.parent, project) if args.parent else None

    if epic and args.issue_type not in utils.EPIC_CHILD_TYPES:
        raise ValueError("Can't create a {} under an epic!".format(args.issue_type))
    if args.issue_type == "Sub-task" and not parent:
        raise ValueError("A Sub-task needs a --parent issue")

    fields = {
        "summary": args.title,
        "project": {"key": project},
        "issuetype": {"name": args.issue_type},
    }
    description = description_to_adf(args.description)
    if description is not None:
        fields["description"] = description
    if args.labels:
        fields["labels"] = args.labels
    if args.components:
        fields["components"] = [{"name": name} for name in args.components]
    # Epic membership is expressed through the parent field in team-managed
    # and current company-managed projects alike.
    if parent or epic:
        fields["parent"] = {"key": parent or epic}
    return fields


def describe_issue(issue, children=()):
    fields = issue.get("fields", {})
    assignee = fields.get("assignee") or {}
    issue_type = (fields.get("issuetype") or {}).get("name", "")
    lines = [
        "{}: {}".format(issue.get("key"), fields.get("summary", "")),
        "Status:     {}".format((fields.get("status") or {}).get("name", "")),
        "Type:       {}".format(issue_type),
    ]
    if fields.get("parent"):
        lines.append("Parent:     {}".format(fields["parent"].get("key", "")))
    lines.append("Assignee:   {}".format(assignee.get("displayName", "Unassigned")))
    if fields.get("labels"):
        lines.append("Labels:     {}".format(", ".join(fields["labels"])))
    if fields.get("components"):
        lines.append("Components: {}".format(
            ", ".join(c.get("name", "") for c in fields["components"])))
    description = flatten_description(fields.get("description"))
    if description:
        lines.extend(["", description])
    if children:
        lines.extend(["", "Epic issues:" if issue_type == "Epic" else "Subtasks:"])
        lines.extend(summarize_issue(child) for child in children)
    return "\n".join(lines)


def summarize_issue(issue):
    fields = issue.get("fields", {})
    return "{}\t{}\t{}".format(issue.get("key"),
                               (fields.get("status") or {}).get("name", ""),
                               fields.get("summary", ""))


def do_convert(args):
    print(json.dumps(markdown_to_adf(read_markdown(args.file)), indent=2))


def do_create(args, client, config):
    if not args.title:
        prompted = utils.text_from_editor()
        if prompted is None:
            raise ValueError("Aborting: issue title wasn't provided.")
        args.title, args.description = prompted

    # convert before touching the network so a bad description creates nothing
    fields = build_issue_fields(args, config)
    created = client.create_issue(fields)
    print(client.browse_url(created["key"]))


def do_transition(args, client, config):
    issue_key = utils.canonical_issue_key(args.issue, config["project"])
    client.transition_issue(issue_key, utils.transition_id(args.transition))


def do_take(args, client, config):
    issue_key = utils.canonical_issue_key(args.issue, config["project"])
    myself = client.get_myself()
    client.assign_issue(issue_key, myself["accountId"])


def do_show(args, client, config):
    issue_key = utils.canonical_issue_key(args.issue, config["project"])
    issue = client.get_issue(issue_key)
    # epic children and subtasks both point at their parent
    children = list(client.search_issues(CHILDREN_SEARCH.format(key=issue_key)))
    print(describe_issue(issue, children))


def do_open(args, client, config):
    issue_key = utils.canonical_issue_key(args.issue, config["project"])
    webbrowser.open(client.browse_url(issue_key))


def do_list(args, client, config):
    jql = SEARCHES[args.which].format(project=config["project"])
    LOGGER.info("Searching issues: %s", jql)
    for issue in client.search_issues(jql):
        print(summarize_issue(issue))


COMMANDS = {
    "create": do_create,
    "transition": do_transition,
    "t": do_transition,
    "take": do_take,
    "show": do_show,
    "s": do_show,
    "open": do_open,
    "o": do_open,
    "list": do_list,
}


@singer.utils.handle_top_exception(LOGGER)
def main(argv=None):
    args = get_args(argv)

    if args.command == "convert":
        do_convert(args)
        return

    config = utils.load_config(args.config,
                               {"subdomain": args.subdomain, "project": args.project})
    client = Client(config)
    COMMANDS[args.command](args, client, config)


if __name__ == "__main__":
    main()
