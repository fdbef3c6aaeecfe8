from __future__ import annotations

import pytest

from repoaudit.config import SkipRules
from repoaudit.crawler import (
    Crawler,
    CrawlError,
    RepositoryInventory,
    RepositoryNotFoundError,
)


def test_crawl_records_files_directories_and_important_contents(crawl):
    inventory = crawl({
        "README.md": "# Hello",
        "src/index.js": "console.log('hi')",
        "src/components/Button.jsx": "export default () => null",
        "src/styles/site.css": "body {}",
    })

    assert inventory.files == (
        "README.md",
        "src/index.js",
        "src/components/Button.jsx",
        "src/styles/site.css",
    )
    assert inventory.directories == ("src", "src/components", "src/styles")
    assert inventory.content("README.md") == "# Hello"
    assert inventory.content("src/index.js") == "console.log('hi')"
    # .css is listed but not an important extension
    assert "src/styles/site.css" in inventory.file_paths
    assert inventory.content("src/styles/site.css") is None


def test_node_modules_never_traversed(make_source):
    source = make_source({
        "package.json": "{}",
        "project/node_modules/pkg/index.js": "module.exports = 1",
        "project/src/app.js": "",
    })
    inventory = Crawler(source).crawl()

    assert "project/node_modules" not in inventory.directory_paths
    assert "project/node_modules/pkg" not in inventory.directory_paths
    assert not any("node_modules" in f for f in inventory.files)
    assert "project/node_modules" not in source.listed


def test_large_file_excluded_even_if_important(crawl):
    inventory = crawl(
        {"big.js": "x", "small.js": "y"},
        sizes={"big.js": 2_000_000},
    )

    assert "big.js" not in inventory.file_paths
    assert "big.js" not in inventory.file_contents
    assert "small.js" in inventory.file_paths


def test_skipped_extensions_excluded(crawl):
    inventory = crawl({
        "dist.min.js": "x",
        "logo.png": b"\x89PNG",
        "yarn.lock": "",
        "app.js": "",
    })

    assert inventory.files == ("app.js",)


def test_skip_rules_sound_for_every_recorded_path(crawl, express_app):
    rules = SkipRules()
    express_app["node_modules/express/index.js"] = "module.exports = {}"
    express_app["build/bundle.js"] = ""
    express_app["coverage/lcov.info"] = ""

    inventory = crawl(express_app)

    for directory in inventory.directories:
        assert not rules.skip_directory(directory)
    for path in inventory.files:
        assert not path.endswith(rules.skip_extensions)
        assert not rules.skip_directory(path.rpartition("/")[0])


def test_directories_containing_skip_names_are_skipped(make_source):
    source = make_source({
        "src/routes/a.js": "",
        "layout/b.js": "",
        "tmpdata/c.js": "",
        "src/app.js": "",
    })

    inventory = Crawler(source).crawl()

    assert inventory.directories == ("src",)
    assert inventory.files == ("src/app.js",)
    assert "layout" not in source.listed
    for directory in inventory.directories:
        assert not any(name in directory.lower() for name in SkipRules().skip_dirs)


def test_contents_keys_are_always_files(crawl, express_app):
    inventory = crawl(express_app)

    assert set(inventory.file_contents) <= inventory.file_paths


def test_inventory_rejects_contents_for_unknown_file():
    with pytest.raises(ValueError, match="unknown files"):
        RepositoryInventory(files=("a.js",), file_contents={"b.js": ""})


def test_inventory_adds_missing_parents_before_children():
    inventory = RepositoryInventory(files=("a/b/c/d.js",), directories=("a/b/c",))

    assert inventory.directories == ("a", "a/b", "a/b/c")


def test_inventory_is_read_only():
    inventory = RepositoryInventory(files=("a.js",), file_contents={"a.js": "x"})

    with pytest.raises(TypeError):
        inventory.file_contents["a.js"] = "y"  # type: ignore[index]


def test_root_not_found_is_fatal(make_source):
    with pytest.raises(RepositoryNotFoundError):
        Crawler(make_source({}, missing=True)).crawl()


def test_root_server_error_is_crawl_error(make_source):
    source = make_source({"a.js": ""}, failing={""})

    with pytest.raises(CrawlError) as excinfo:
        Crawler(source).crawl()
    assert not isinstance(excinfo.value, RepositoryNotFoundError)


def test_partial_failures_recorded_and_walk_continues(make_source):
    source = make_source(
        {
            "broken/a.js": "",
            "ok/b.js": "const b = 1",
            "unreadable.js": "",
        },
        failing={"broken", "unreadable.js"},
    )

    inventory = Crawler(source).crawl()

    assert "broken" in inventory.inaccessible
    assert "unreadable.js" in inventory.inaccessible
    # Listed but unreadable files stay in the inventory
    assert "unreadable.js" in inventory.file_paths
    assert "unreadable.js" not in inventory.file_contents
    assert inventory.content("ok/b.js") == "const b = 1"


def test_invalid_utf8_recorded_as_inaccessible(crawl):
    inventory = crawl({"notes.txt": b"\xff\xfe\x00bad"})

    assert "notes.txt" in inventory.file_paths
    assert "notes.txt" in inventory.inaccessible


def test_unimportant_files_are_not_read(make_source):
    source = make_source({"style.css": "body {}", "app.ts": "let a = 1"})

    Crawler(source).crawl()

    assert source.read == ["app.ts"]


def test_custom_rules_are_honoured(make_source):
    rules = SkipRules(skip_dirs=("legacy",), max_file_size=10)
    source = make_source({
        "legacy/old.js": "",
        "node_modules/x.js": "",
        "long.js": "01234567890",
    })

    inventory = Crawler(source, rules=rules).crawl()

    assert "legacy" not in inventory.directory_paths
    assert "node_modules/x.js" in inventory.file_paths
    assert "long.js" not in inventory.file_paths


def test_parallel_crawl_matches_sequential(make_source, express_app):
    sequential = Crawler(make_source(express_app)).crawl()
    parallel = Crawler(make_source(express_app), max_workers=4).crawl()

    assert parallel == sequential
    assert parallel.files == sequential.files
    assert parallel.directories == sequential.directories


def test_repeated_crawls_are_identical(crawl, express_app):
    assert crawl(express_app) == crawl(express_app)


def test_has_directory_named(crawl):
    inventory = crawl({"src/controllers/index.js": ""})

    assert inventory.has_directory_named("controllers")
    assert not inventory.has_directory_named("control")
