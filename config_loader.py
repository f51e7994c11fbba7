# Module for loading and validating configuration
import json
import os
import re
import constants # Import constants


def parse_rate_limit(value):
    """
    Parses a wget-style rate limit ("10m", "500k", "1g", "2048") into bytes per second.
    Empty values mean no limit and return None. Raises ValueError for anything else.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError(f"Invalid limit_rate '{value}'.")
    if isinstance(value, (int, float)):
        if value <= 0:
            raise ValueError(f"Invalid limit_rate '{value}': must be positive.")
        return int(value)
    text = str(value).strip().lower()
    if not text:
        return None
    match = re.fullmatch(r'(\d+(?:\.\d+)?)\s*([kmg]?)', text)
    if not match:
        raise ValueError(f"Invalid limit_rate '{value}'. Use a number with an optional k, m or g suffix.")
    rate = int(float(match.group(1)) * constants.RATE_LIMIT_UNITS[match.group(2)])
    if rate <= 0:
        raise ValueError(f"Invalid limit_rate '{value}': must be positive.")
    return rate


def _validate_artifacts(artifacts, config_path):
    if not isinstance(artifacts, list) or not artifacts:
        raise ValueError(f"Config file '{config_path}' must define 'artifacts' as a non-empty list.")
    seen = set()
    for index, entry in enumerate(artifacts):
        if not isinstance(entry, dict):
            raise ValueError(f"Config 'artifacts[{index}]' must be an object with a 'url' key.")
        url = entry.get('url')
        if not isinstance(url, str) or not url.strip():
            raise ValueError(f"Config 'artifacts[{index}]' is missing a non-empty 'url'.")
        description = entry.get('description')
        if description is not None and not isinstance(description, str):
            raise ValueError(f"Config 'artifacts[{index}].description' must be a string.")
        identity = url.strip()
        if identity in seen:
            raise ValueError(f"Config 'artifacts' lists '{identity}' more than once.")
        seen.add(identity)


def load_config(config_path=constants.DEFAULT_CONFIG_FILE):
    """Loads configuration from a JSON file, validates, and sets defaults."""
    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            config = json.load(f)

        if not isinstance(config, dict):
            raise ValueError(f"Config file '{config_path}' must contain a JSON object.")

        # --- Validation ---
        required_keys = ["artifacts"]
        missing_keys = [key for key in required_keys if key not in config]
        if missing_keys:
            raise ValueError(f"Config file '{config_path}' is missing required keys: {', '.join(missing_keys)}")
        _validate_artifacts(config['artifacts'], config_path)

        # --- Set Defaults for Optional Keys ---
        config['archive_dir'] = config.get('archive_dir') or constants.DEFAULT_ARCHIVE_DIR
        config['metadata_file'] = config.get('metadata_file') or os.path.join(config['archive_dir'], constants.METADATA_FILENAME)
        config['schedule'] = config.get('schedule') or constants.DEFAULT_SCHEDULE
        config['contact_email'] = config.get('contact_email') or ''
        config['user_agent'] = config.get('user_agent') or constants.DEFAULT_USER_AGENT
        config['request_delay_seconds'] = config.get('request_delay_seconds', constants.DEFAULT_REQUEST_DELAY)
        config['random_wait'] = config.get('random_wait', True)
        config['max_retries'] = config.get('max_retries', constants.DEFAULT_MAX_RETRIES)
        config['request_timeout_probe'] = config.get('request_timeout_probe', constants.DEFAULT_TIMEOUT_PROBE)
        config['request_timeout_content'] = config.get('request_timeout_content', constants.DEFAULT_TIMEOUT_CONTENT)
        config['mirror_max_depth'] = config.get('mirror_max_depth', constants.DEFAULT_MIRROR_MAX_DEPTH)
        config['mirror_max_pages'] = config.get('mirror_max_pages', constants.DEFAULT_MIRROR_MAX_PAGES)
        config['prevalidate'] = config.get('prevalidate', False)
        config['prevalidate_hard_failure'] = config.get('prevalidate_hard_failure', constants.PREVALIDATE_ABORT)
        config['publish'] = config.get('publish', False)
        config['github_token'] = config.get('github_token') or os.environ.get('GITHUB_TOKEN', '')
        config['repository'] = config.get('repository') or os.environ.get('GITHUB_REPOSITORY', '')
        config['branch'] = config.get('branch') or constants.DEFAULT_BRANCH
        config['readme_file'] = config.get('readme_file') or constants.DEFAULT_README_FILE
        config['index_file'] = config.get('index_file') or constants.DEFAULT_INDEX_FILE
        config['log_file'] = config.get('log_file')

        # --- Further Validation ---
        config['limit_rate_bytes'] = parse_rate_limit(config.get('limit_rate'))
        if isinstance(config['request_delay_seconds'], bool) or not isinstance(config['request_delay_seconds'], (int, float)) or config['request_delay_seconds'] < 0:
            raise ValueError("Config 'request_delay_seconds' must be a non-negative number.")
        for key in ('max_retries', 'mirror_max_depth'):
            if isinstance(config[key], bool) or not isinstance(config[key], int) or config[key] < 0:
                raise ValueError(f"Config '{key}' must be a non-negative integer.")
        if isinstance(config['mirror_max_pages'], bool) or not isinstance(config['mirror_max_pages'], int) or config['mirror_max_pages'] < 1:
            raise ValueError("Config 'mirror_max_pages' must be a positive integer.")
        for key in ('request_timeout_probe', 'request_timeout_content'):
            if isinstance(config[key], bool) or not isinstance(config[key], (int, float)) or config[key] <= 0:
                raise ValueError(f"Config '{key}' must be a positive number.")
        if config['prevalidate_hard_failure'] not in constants.PREVALIDATE_POLICIES:
            raise ValueError(f"Config 'prevalidate_hard_failure' must be one of: {', '.join(constants.PREVALIDATE_POLICIES)}.")
        if config['repository'] and not re.fullmatch(r'[\w.-]+/[\w.-]+', config['repository']):
            raise ValueError("Config 'repository' must look like 'owner/name'.")
        if config['publish']:
            if not config['github_token']:
                raise ValueError("Publishing is enabled but no 'github_token' (or GITHUB_TOKEN) was provided.")
            if not config['repository']:
                raise ValueError("Publishing is enabled but no 'repository' (or GITHUB_REPOSITORY) was provided.")

        return config

    except json.JSONDecodeError as e:
        raise ValueError(f"Error decoding JSON from config file '{config_path}': {e}") from e
