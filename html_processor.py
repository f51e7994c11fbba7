# Module for HTML parsing: requisite discovery, page-link discovery and local link rewriting

import logging
import posixpath
from urllib.parse import urljoin, urlparse, urldefrag

from bs4 import BeautifulSoup

import file_handler

# Set up a specific logger for this module
logger = logging.getLogger(__name__)

# (tag, attribute) pairs whose targets a page needs to render offline
REQUISITE_ATTRIBUTES = [
    ('script', 'src'),
    ('img', 'src'),
    ('source', 'src'),
    ('video', 'src'),
    ('audio', 'src'),
    ('video', 'poster'),
]
REQUISITE_LINK_RELS = {'stylesheet', 'icon', 'shortcut', 'apple-touch-icon', 'preload'}
SKIPPED_SCHEMES = ('data:', 'mailto:', 'javascript:', 'tel:', '#')


# --- URL Helpers ---
def normalize_url(url):
    """Drops the fragment; two URLs differing only by fragment are the same resource."""
    return urldefrag(url)[0]


def is_same_origin(url, origin_url):
    candidate = urlparse(url)
    origin = urlparse(origin_url)
    return candidate.scheme in ('http', 'https') and candidate.netloc.lower() == origin.netloc.lower()


def crawl_scope(target_url):
    """Directory prefix below which links count as part of the mirrored site (no-parent)."""
    path = urlparse(target_url).path or '/'
    if not path.endswith('/'):
        path = posixpath.dirname(path)
        if not path.endswith('/'):
            path += '/'
    return path


def _join(raw_value, page_url):
    """Absolute URL for an attribute value, or None for skipped schemes and unparseable values."""
    if not raw_value:
        return None
    value = raw_value.strip()
    if not value or value.lower().startswith(SKIPPED_SCHEMES):
        return None
    try:
        return urljoin(page_url, value)
    except ValueError as e: # e.g. "http://[broken/x.png"
        logger.debug(f"Ignoring malformed URL {value!r} on {page_url}: {e}")
        return None


def _resolve(raw_value, page_url):
    joined = _join(raw_value, page_url)
    return normalize_url(joined) if joined else None


def _link_rels(tag):
    rel = tag.get('rel') or []
    if isinstance(rel, str):
        rel = rel.split()
    return {value.lower() for value in rel}


# --- Discovery ---
def find_requisites(html_content, page_url, origin_url):
    """Finds same-origin styles, scripts, images and media a page needs."""
    found = []
    if not html_content:
        return found

    soup = BeautifulSoup(html_content, 'html.parser')
    for tag_name, attr in REQUISITE_ATTRIBUTES:
        for tag in soup.find_all(tag_name, attrs={attr: True}):
            found.append(_resolve(tag[attr], page_url))
    for tag in soup.find_all('link', href=True):
        if _link_rels(tag) & REQUISITE_LINK_RELS:
            found.append(_resolve(tag['href'], page_url))

    unique = []
    for url in found:
        if url and url not in unique and is_same_origin(url, origin_url):
            unique.append(url)
    logger.debug(f"Found {len(unique)} requisites on {page_url}")
    return unique


def find_page_links(html_content, page_url, origin_url, scope):
    """Finds same-origin <a href> links below the crawl scope (pagination, sub-pages)."""
    links = []
    if not html_content:
        return links

    soup = BeautifulSoup(html_content, 'html.parser')
    for tag in soup.find_all('a', href=True):
        url = _resolve(tag['href'], page_url)
        if not url or url in links or not is_same_origin(url, origin_url):
            continue
        if not (urlparse(url).path or '/').startswith(scope):
            continue
        links.append(url)
    return links


# --- Link Rewriting ---
def rewrite_links(html_content, page_local_path, saved_map, page_url):
    """
    Rewrites href/src attributes pointing at resources in saved_map (URL -> local path)
    to paths relative to the page's own local file. Returns the rewritten page as UTF-8 bytes.
    """
    soup = BeautifulSoup(html_content, 'html.parser')
    rewrite_count = 0
    for tag in soup.find_all(True):
        for attr in ('href', 'src', 'poster'):
            raw_value = tag.get(attr)
            if not raw_value or isinstance(raw_value, list):
                continue
            joined = _join(raw_value, page_url)
            if not joined:
                continue
            absolute, fragment = urldefrag(joined)
            if absolute not in saved_map:
                continue
            local_link = file_handler.relative_link(saved_map[absolute], page_local_path)
            tag[attr] = f"{local_link}#{fragment}" if fragment else local_link
            rewrite_count += 1

    if rewrite_count > 0:
        logger.info(f"Rewrote {rewrite_count} links in {page_url}")
    return soup.encode('utf-8')
