import pytest
import os
import sys

# Add project root to sys.path to allow importing project modules
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
sys.path.insert(0, project_root)

import strategy_selector
from models import Strategy, DirectUrl, CommunityReference


@pytest.mark.parametrize("identity, expected_name", [
    ("r/example", "example"),
    ("r/AskReddit/", "AskReddit"),
    ("  r/learn_python  ", "learn_python"),
])
def test_classify_identity_community(identity, expected_name):
    classified = strategy_selector.classify_identity(identity)

    assert isinstance(classified, CommunityReference)
    assert classified.name == expected_name
    assert classified.index_url == f"https://old.reddit.com/r/{expected_name}/wiki/index"


@pytest.mark.parametrize("identity", [
    "https://example.org",
    "https://www.reddit.com/r/example",
    "r/",
    "r/x",
    "r/has space",
    "r/example/wiki",
    "not a url at all",
    "",
])
def test_classify_identity_direct_url(identity):
    classified = strategy_selector.classify_identity(identity)
    assert isinstance(classified, DirectUrl)
    assert classified.url == identity.strip()


def test_select_strategy_community_reference():
    target_url, strategy = strategy_selector.select_strategy("r/example")

    assert target_url == "https://old.reddit.com/r/example/wiki/index"
    assert strategy is Strategy.SINGLE_DOCUMENT


def test_select_strategy_direct_url():
    assert strategy_selector.select_strategy("https://example.org") == ("https://example.org", Strategy.MIRROR)


def test_select_strategy_never_raises_for_malformed_identity():
    assert strategy_selector.select_strategy("::::") == ("::::", Strategy.MIRROR)
    assert strategy_selector.select_strategy(None) == ("", Strategy.MIRROR)
