# Module for executing a capture strategy (full-site mirror or single-document fetch)

import logging
from collections import deque

import constants
import file_handler
import html_processor
from api_clients.capture_client import download_resource, polite_wait
from models import Strategy, FetchResult, CommunityReference
from strategy_selector import classify_identity


def fetch_capture(target_url, strategy, config, identity=None):
    """
    Captures a reachable target with the given strategy.
    Returns a FetchResult holding the store-relative path of the captured page, or a failure reason.
    """
    if strategy is Strategy.SINGLE_DOCUMENT:
        return fetch_document(target_url, config, identity=identity)
    return mirror_site(target_url, config)


def _store_relative(local_path, archive_dir):
    try:
        return FetchResult.success(file_handler.to_store_relative(local_path, archive_dir))
    except ValueError as e:
        return FetchResult.failure(str(e))


# --- Single Document ---
def fetch_document(target_url, config, identity=None):
    """Fetches exactly one document and overwrites its stored copy. Links are not followed."""
    archive_dir = config.get('archive_dir', constants.DEFAULT_ARCHIVE_DIR)
    classified = classify_identity(identity) if identity else None
    if isinstance(classified, CommunityReference):
        local_path = file_handler.community_document_path(classified.name, archive_dir)
    else:
        local_path = file_handler.local_path_for_url(target_url, archive_dir, is_html=True)

    logging.info(f"Fetching single document: {target_url}")
    download = download_resource(target_url, config=config)
    if not download.ok:
        return FetchResult.failure(f"Download of {target_url} failed: {download.error}")
    if not download.content:
        return FetchResult.failure(f"Download of {target_url} returned an empty document")

    if not file_handler.write_file_atomic(local_path, [download.content]):
        return FetchResult.failure(f"Could not write {local_path}")
    logging.info(f"Saved {target_url} to {local_path}")
    return _store_relative(local_path, archive_dir)


# --- Full-site Mirror ---
def mirror_site(target_url, config):
    """
    Mirrors a target page, the same-origin pages linked below it (up to mirror_max_depth and
    mirror_max_pages) and every same-origin requisite those pages need, rewriting links so the
    copy renders offline. Only a failure of the target page itself fails the capture.
    """
    archive_dir = config.get('archive_dir', constants.DEFAULT_ARCHIVE_DIR)
    max_depth = config.get('mirror_max_depth', constants.DEFAULT_MIRROR_MAX_DEPTH)
    max_pages = config.get('mirror_max_pages', constants.DEFAULT_MIRROR_MAX_PAGES)
    target_url = html_processor.normalize_url(target_url)
    scope = html_processor.crawl_scope(target_url)

    logging.info(f"Mirroring website: {target_url} (depth {max_depth}, up to {max_pages} pages)")

    saved_map = {} # URL -> local path, for link rewriting
    pages = [] # (base_url, local_path, html bytes)
    requisites = []
    seen = {target_url}
    queue = deque([(target_url, 0)])
    origin_url = target_url
    target_local_path = None
    request_count = 0
    page_count = 1

    while queue:
        url, depth = queue.popleft()
        if request_count:
            polite_wait(config)
        request_count += 1

        download = download_resource(url, config=config)
        if not download.ok:
            if url == target_url:
                return FetchResult.failure(f"Download of {target_url} failed: {download.error}")
            logging.warning(f"Skipping linked page {url}: {download.error}")
            continue

        base_url = html_processor.normalize_url(download.final_url or url)
        if url == target_url:
            origin_url = base_url
        local_path = file_handler.local_path_for_url(url, archive_dir, is_html=download.is_html)
        saved_map[url] = local_path
        saved_map.setdefault(base_url, local_path)
        if url == target_url:
            target_local_path = local_path

        if not download.is_html:
            if not file_handler.write_file_atomic(local_path, [download.content]):
                if url == target_url:
                    return FetchResult.failure(f"Could not write {local_path}")
                saved_map.pop(url, None)
            continue

        pages.append((base_url, local_path, download.content))
        for requisite in html_processor.find_requisites(download.content, base_url, origin_url):
            if requisite not in seen:
                seen.add(requisite)
                requisites.append(requisite)
        if depth >= max_depth:
            continue
        for link in html_processor.find_page_links(download.content, base_url, origin_url, scope):
            if link in seen or page_count >= max_pages:
                continue
            seen.add(link)
            page_count += 1
            queue.append((link, depth + 1))

    saved_count, failed_count = _download_requisites(requisites, saved_map, archive_dir, config)
    logging.info(f"Requisite summary for {target_url}: Found={len(requisites)}, Saved={saved_count}, Failed={failed_count}")

    for base_url, local_path, html_content in pages:
        rewritten = html_processor.rewrite_links(html_content, local_path, saved_map, base_url)
        if not file_handler.write_file_atomic(local_path, [rewritten]):
            if local_path == target_local_path:
                return FetchResult.failure(f"Could not write {local_path}")
            logging.warning(f"Could not save linked page {base_url}")

    # After a cross-host redirect, requisites live under the redirected host
    host_dirs = {file_handler.host_directory(url, archive_dir) for url in (target_url, origin_url)}
    for host_dir in sorted(host_dirs):
        file_handler.cleanup_transfer_leftovers(host_dir)
    logging.info(f"Mirrored {target_url}: {len(pages)} pages, {saved_count} requisites.")
    return _store_relative(target_local_path, archive_dir)


def _download_requisites(requisites, saved_map, archive_dir, config):
    saved_count = 0
    failed_count = 0
    for requisite_url in requisites:
        polite_wait(config)
        download = download_resource(requisite_url, config=config)
        if not download.ok:
            failed_count += 1
            logging.warning(f"Failed to fetch requisite: {requisite_url}")
            continue
        local_path = file_handler.local_path_for_url(requisite_url, archive_dir, is_html=False)
        if file_handler.write_file_atomic(local_path, [download.content]):
            saved_map[requisite_url] = local_path
            saved_count += 1
        else:
            failed_count += 1
    return saved_count, failed_count
