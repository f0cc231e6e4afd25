import random

import pytest


def pytest_addoption(parser):
    """Add custom command line option for enabling worker tests."""
    parser.addoption(
        "--workers",
        action="store_true",
        default=False,
        help="Enable multi-process worker tests (skipped by default for CI/CD)"
    )


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "workers: mark test as requiring --workers flag to run"
    )


def pytest_collection_modifyitems(config, items):
    """Skip worker tests unless --workers flag is provided."""
    if config.getoption("--workers"):
        # Workers flag provided, run all tests
        return

    skip_workers = pytest.mark.skip(reason="need --workers option to run")
    for item in items:
        if "workers" in item.keywords:
            item.add_marker(skip_workers)


TOY_CORPUS = ["a b a b", "a b a c"]


def make_synthetic_corpus(num_lines: int = 200, seed: int = 7):
    """Sentences from a tiny determiner/adjective/noun/verb grammar."""
    rng = random.Random(seed)
    determiners = ["the", "a", "this", "that"]
    adjectives = ["red", "big", "old", "small", "green"]
    nouns = ["dog", "cat", "house", "tree", "car", "bird"]
    verbs = ["sees", "likes", "finds", "wants"]
    lines = []
    for _ in range(num_lines):
        words = [rng.choice(determiners)]
        if rng.random() < 0.5:
            words.append(rng.choice(adjectives))
        words += [rng.choice(nouns), rng.choice(verbs), rng.choice(determiners), rng.choice(nouns)]
        lines.append(" ".join(words))
    return lines


@pytest.fixture
def toy_corpus():
    return list(TOY_CORPUS)


@pytest.fixture
def synthetic_corpus():
    return make_synthetic_corpus()


@pytest.fixture
def corpus_file(tmp_path, synthetic_corpus):
    path = tmp_path / "corpus.txt"
    path.write_text("\n".join(synthetic_corpus) + "\n", encoding="utf-8")
    return path
