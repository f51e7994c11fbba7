# Module for generating the human-facing README.md and index.html from the archive records

import os
import html
import logging

import constants
import file_handler
from models import OutcomeKind


def generate_schedule_description(schedule):
    """Generates a dynamic schedule description."""
    lowered = (schedule or '').lower()
    if "daily" in lowered:
        return "This archive is automatically updated every day."
    elif "weekly" in lowered:
        return "This archive is automatically updated on a weekly basis."
    elif "monthly" in lowered:
        return "This archive is automatically updated once a month."
    return f"This archive is updated according to the following schedule: {schedule}."


def repository_links(repository):
    """GitHub Pages, ZIP download and issue URLs for an 'owner/name' repository, or None."""
    if not repository or '/' not in repository:
        return None
    owner, name = repository.split('/', 1)
    return {
        'pages': f"https://{owner}.github.io/{name}/",
        'zip': f"https://github.com/{owner}/{name}/archive/refs/heads/main.zip",
        'issues': f"https://github.com/{owner}/{name}/issues",
    }


def status_label(record, outcome):
    """
    Describes how current a record is. Records not refreshed by this run always say so,
    together with the date of the copy being shown.
    """
    if outcome is None:
        return f"Not checked this run, showing copy from {record.last_captured_at}"
    if outcome.kind is OutcomeKind.SUCCESS:
        return "Captured"
    if outcome.kind is OutcomeKind.FALLBACK_USED:
        return f"Last capture failed, showing copy from {record.last_captured_at}"
    return f"Not captured this run ({outcome.reason}), showing copy from {record.last_captured_at}"


def report_link(stored_path, archive_dir, report_file):
    """Link from a report file to a store-relative path such as archive/example.org/index.html."""
    archive_parent = os.path.dirname(os.path.abspath(archive_dir))
    target = os.path.join(archive_parent, *stored_path.split('/'))
    return file_handler.relative_link(target, os.path.abspath(report_file))


def _report_rows(store, outcomes, config, report_file):
    archive_dir = config.get('archive_dir', constants.DEFAULT_ARCHIVE_DIR)
    outcomes_by_identity = {outcome.identity: outcome for outcome in outcomes}
    rows = []
    for identity, record in store.items():
        rows.append({
            'identity': identity,
            'path': report_link(record.local_path, archive_dir, report_file),
            'description': record.description or constants.NO_DESCRIPTION,
            'date': record.last_captured_at,
            'status': status_label(record, outcomes_by_identity.get(identity)),
        })
    missing = [outcome for outcome in outcomes if outcome.identity not in store]
    return rows, missing


def _markdown_cell(value):
    return str(value).replace('|', '\\|').replace('\n', ' ')


def generate_readme_content(store, outcomes, config):
    """Generates the README.md content."""
    readme_file = config.get('readme_file', constants.DEFAULT_README_FILE)
    schedule_description = generate_schedule_description(config.get('schedule', constants.DEFAULT_SCHEDULE))
    links = repository_links(config.get('repository'))
    rows, missing = _report_rows(store, outcomes, config, readme_file)
    contact_email = config.get('contact_email')

    lines = [
        "# What is this?",
        f"This is an archive of various websites that are periodically saved to preserve their content. {schedule_description}",
        "",
    ]
    if links:
        lines += [
            "## Accessing this archive",
            "### Online, no download required.",
            f"[View the archive]({links['pages']})",
            "",
            "### Locally",
            f"[Download ZIP]({links['zip']}) and extract the contents. Open `index.html` in your browser to navigate the archive.",
            "",
        ]
    lines += [
        "## List of Archived Websites",
        "| Website | Description | Last Successful Archive | Status |",
        "|---------|-------------|-------------------------|--------|",
    ]
    for row in rows:
        lines.append(
            f"| [{_markdown_cell(row['identity'])}]({row['path']}) | {_markdown_cell(row['description'])} "
            f"| {row['date']} | {_markdown_cell(row['status'])} |"
        )
    if missing:
        lines += ["", "## Not Archived", ""]
        lines += [f" - **{_markdown_cell(outcome.identity)}**: {_markdown_cell(outcome.reason)}" for outcome in missing]

    lines += [
        "",
        "## Mirroring",
        "I encourage you to start your own mirror, and open an issue or pull request if you would like it added to the readme.",
    ]
    contact_parts = []
    if links:
        contact_parts.append(f"If you have questions or suggestions, please open an issue on [GitHub]({links['issues']}).")
    if contact_email:
        contact_parts.append(f"Or you can [send me an email](mailto:{contact_email}).")
    if contact_parts:
        lines += ["", "## Contact Me", " ".join(contact_parts)]
    return "\n".join(lines) + "\n"


def generate_index_content(store, outcomes, config):
    """Generates the index.html content."""
    index_file = config.get('index_file', constants.DEFAULT_INDEX_FILE)
    escape = html.escape
    schedule_description = generate_schedule_description(config.get('schedule', constants.DEFAULT_SCHEDULE))
    links = repository_links(config.get('repository'))
    rows, missing = _report_rows(store, outcomes, config, index_file)
    contact_email = config.get('contact_email')

    table_rows = "\n".join(
        f"        <tr><td><a href=\"{escape(row['path'])}\">{escape(row['identity'])}</a></td>"
        f"<td>{escape(row['description'])}</td><td>{escape(row['date'])}</td><td>{escape(row['status'])}</td></tr>"
        for row in rows
    )
    access = ""
    if links:
        access = (
            "    <h2>Accessing this archive</h2>\n"
            f"    <p><strong>Online, no download required:</strong> <a href=\"{escape(links['pages'])}\">{escape(links['pages'])}</a></p>\n"
            f"    <p><strong>Locally:</strong> <a href=\"{escape(links['zip'])}\">Download ZIP</a> and extract the contents.</p>\n"
        )
    not_archived = ""
    if missing:
        items = "\n".join(f"        <li>{escape(outcome.identity)}: {escape(outcome.reason)}</li>" for outcome in missing)
        not_archived = f"    <h2>Not Archived</h2>\n    <ul>\n{items}\n    </ul>\n"
    contact = ""
    if links or contact_email:
        contact = "    <h2>Contact</h2>\n    <p>"
        if links:
            contact += f"Questions or suggestions? Open an issue on <a href=\"{escape(links['issues'])}\">GitHub</a>."
        if contact_email:
            contact += f" Or <a href=\"mailto:{escape(contact_email)}\">send an email</a>."
        contact += "</p>\n"

    return (
        "<!DOCTYPE html>\n"
        "<html lang=\"en\">\n"
        "<head>\n"
        "    <meta charset=\"UTF-8\">\n"
        "    <meta name=\"viewport\" content=\"width=device-width, initial-scale=1.0\">\n"
        "    <title>Archived Websites</title>\n"
        "</head>\n"
        "<body>\n"
        "    <h1>What is this?</h1>\n"
        f"    <p>This is an archive of various websites that are periodically saved to preserve their content. {escape(schedule_description)}</p>\n"
        f"{access}"
        "    <h2>List of Archived Websites</h2>\n"
        "    <table>\n"
        "        <tr><th>Website</th><th>Description</th><th>Last Successful Archive</th><th>Status</th></tr>\n"
        f"{table_rows}\n"
        "    </table>\n"
        f"{not_archived}"
        f"{contact}"
        "</body>\n"
        "</html>\n"
    )


def write_output_files(store, outcomes, config):
    """Writes README.md and index.html. Returns the list of files written; errors are logged."""
    outputs = [
        (config.get('readme_file', constants.DEFAULT_README_FILE), generate_readme_content),
        (config.get('index_file', constants.DEFAULT_INDEX_FILE), generate_index_content),
    ]
    written = []
    for path, generate in outputs:
        try:
            directory = os.path.dirname(path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(path, 'w', encoding='utf-8') as f:
                f.write(generate(store, outcomes, config))
            written.append(path)
            logging.info(f"Wrote report: {path}")
        except OSError as e:
            logging.error(f"Error writing report file {path}: {e}")
    return written
