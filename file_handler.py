# Module for file system operations (local paths, atomic writes, store-relative paths)

import os
import re
import hashlib
import logging
import posixpath
from urllib.parse import urlparse, unquote
import constants # Import constants


# --- Name Sanitizing ---
def sanitize_filename(name):
    """Sanitizes a string to be used as a valid filename."""
    # Remove invalid characters
    name = re.sub(r'[\\/*?:\'"<>|]', '', name)
    # Remove leading/trailing whitespace/periods FIRST
    name = name.strip(' .')
    # Replace remaining spaces with underscores
    name = name.replace(' ', '_')
    name = name[:constants.FILENAME_MAX_LENGTH]
    name = name.strip(' .')
    if not name:
        name = constants.UNTITLED_FILENAME
    return name


def _host_directory(parsed_url):
    host = (parsed_url.hostname or '').lower()
    if parsed_url.port:
        host = f"{host}_{parsed_url.port}"
    return sanitize_filename(host)


def host_directory(url, archive_dir):
    """Directory under the archive root holding everything mirrored from a URL's host."""
    return os.path.join(archive_dir, _host_directory(urlparse(url)))


# --- Local Paths ---
def local_path_for_url(url, archive_dir, is_html=True):
    """
    Maps a URL onto a file path under <archive_dir>/<host>/, the way a mirroring tool does:
    directory-style paths get index.html, HTML pages get an .html extension and
    query strings get a short hash suffix so distinct pages do not collide.
    """
    parsed_url = urlparse(url)
    path = unquote(parsed_url.path)
    segments = [sanitize_filename(part) for part in path.split('/') if part and part not in ('.', '..')]

    if not segments or path.endswith('/'):
        segments.append(constants.INDEX_FILENAME)
    elif is_html and os.path.splitext(segments[-1])[1].lower() not in ('.html', '.htm'):
        segments[-1] += constants.HTML_EXTENSION

    if parsed_url.query:
        digest = hashlib.sha1(parsed_url.query.encode('utf-8')).hexdigest()[:constants.QUERY_HASH_LENGTH]
        base, ext = os.path.splitext(segments[-1])
        segments[-1] = f"{base}_{digest}{ext}"

    return os.path.join(archive_dir, _host_directory(parsed_url), *segments)


def community_document_path(name, archive_dir):
    filename = constants.COMMUNITY_FILENAME_TEMPLATE.format(name=sanitize_filename(name))
    return os.path.join(archive_dir, filename)


def relative_link(target_path, from_page_path):
    """Relative POSIX link from the directory of one local file to another."""
    relative_path = os.path.relpath(target_path, start=os.path.dirname(from_page_path) or '.')
    return relative_path.replace(os.sep, '/')


# --- Store-relative Paths ---
def to_store_relative(path, archive_dir):
    """
    Converts a local path to the store-relative form ("archive/host/index.html").
    Raises ValueError when the path does not live under the archive root.
    """
    archive_root = os.path.abspath(archive_dir)
    inside = os.path.relpath(os.path.abspath(path), start=archive_root)
    if inside == os.pardir or inside.startswith(os.pardir + os.sep) or os.path.isabs(inside):
        raise ValueError(f"Path {path} is outside the archive root {archive_dir}")
    return posixpath.join(os.path.basename(archive_root), inside.replace(os.sep, '/'))


def is_store_relative(stored_path, archive_dir):
    """Checks a persisted path: relative, not a URL, no parent references, rooted at the archive dir name."""
    if not stored_path or '://' in stored_path or '\\' in stored_path:
        return False
    if posixpath.isabs(stored_path) or re.match(r'^[A-Za-z]:', stored_path):
        return False
    parts = stored_path.split('/')
    if '..' in parts or len(parts) < 2:
        return False
    return parts[0] == os.path.basename(os.path.abspath(archive_dir)) and all(parts[1:])


def normalize_stored_path(stored_path, archive_dir):
    """
    Rewrites a legacy persisted path such as "/home/runner/work/site/archive/x/index.html"
    to its store-relative form. Returns None when no archive root component can be found.
    """
    if is_store_relative(stored_path, archive_dir):
        return stored_path
    archive_name = os.path.basename(os.path.abspath(archive_dir))
    candidate = (stored_path or '').replace('\\', '/')
    match = re.search(rf'(?:^|/){re.escape(archive_name)}/(.+)$', candidate)
    if not match:
        return None
    normalized = f"{archive_name}/{match.group(1)}"
    return normalized if is_store_relative(normalized, archive_dir) else None


# --- Writing ---
def write_file_atomic(full_path, chunks):
    """
    Writes an iterable of byte chunks to <full_path>.part and renames it into place.
    Returns the path on success or None on error.
    """
    partial_path = full_path + constants.PARTIAL_SUFFIX
    try:
        os.makedirs(os.path.dirname(full_path) or '.', exist_ok=True)
        with open(partial_path, 'wb') as f:
            for chunk in chunks:
                if chunk:
                    f.write(chunk)
        os.replace(partial_path, full_path)
        logging.debug(f"Successfully saved: {full_path}")
        return full_path
    except OSError as e:
        logging.error(f"Error writing file {full_path}: {e}")
        if os.path.exists(partial_path):
            try:
                os.remove(partial_path)
            except OSError:
                logging.warning(f"Could not remove partial file {partial_path}")
        return None


def cleanup_transfer_leftovers(directory):
    """Removes backup/partial files a transfer leaves behind. Returns the number removed."""
    removed = 0
    if not os.path.isdir(directory):
        return removed
    for root, _dirs, files in os.walk(directory):
        for filename in files:
            if filename.endswith(constants.TRANSFER_LEFTOVER_SUFFIXES):
                leftover = os.path.join(root, filename)
                try:
                    os.remove(leftover)
                    removed += 1
                except OSError as e:
                    logging.warning(f"Could not remove leftover file {leftover}: {e}")
    if removed:
        logging.info(f"Removed {removed} leftover transfer files from {directory}")
    return removed
