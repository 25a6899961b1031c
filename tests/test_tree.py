"""
Directory tree rendering.
"""
import random

from repotext.core import TreeGenerator, generate_tree


def test_empty_input_renders_nothing():
    assert generate_tree([]) == ""


def test_single_file():
    assert generate_tree(["file.txt"]) == "Directory Tree:\n.\n└── file.txt\n"


def test_files_in_root():
    assert generate_tree(["a.txt", "b.txt"]) == "Directory Tree:\n.\n├── a.txt\n└── b.txt\n"


def test_nested_directories_are_merged():
    files = [
        "src/index.ts",
        "src/types.ts",
        "src/classes/A.ts",
        "src/classes/B.ts",
        "package.json",
    ]
    expected = (
        "Directory Tree:\n"
        ".\n"
        "├── package.json\n"
        "└── src\n"
        "    ├── classes\n"
        "    │   ├── A.ts\n"
        "    │   └── B.ts\n"
        "    ├── index.ts\n"
        "    └── types.ts\n"
    )
    result = generate_tree(files)
    assert result == expected
    assert result.count("src\n") == 1
    assert result.count("classes\n") == 1


def test_deep_nesting_and_multiple_branches():
    files = [
        "src/a/deep/path/file1.ts",
        "src/a/deep/path/file2.ts",
        "src/b/other/file3.ts",
        "src/b/file4.ts",
        "root.txt",
    ]
    expected = (
        "Directory Tree:\n"
        ".\n"
        "├── root.txt\n"
        "└── src\n"
        "    ├── a\n"
        "    │   └── deep\n"
        "    │       └── path\n"
        "    │           ├── file1.ts\n"
        "    │           └── file2.ts\n"
        "    └── b\n"
        "        ├── file4.ts\n"
        "        └── other\n"
        "            └── file3.ts\n"
    )
    assert generate_tree(files) == expected


def test_order_independent():
    files = [
        "docs/guide/intro.md",
        "docs/index.md",
        "src/app.py",
        "src/util/io.py",
        "src/util/text.py",
        ".gitignore",
        "setup.cfg",
    ]
    expected = generate_tree(sorted(files))
    rng = random.Random(1234)
    for _ in range(20):
        shuffled = files[:]
        rng.shuffle(shuffled)
        assert generate_tree(shuffled) == expected


def test_sibling_order_follows_full_path_sort():
    # "a.txt" < "a/b.txt" because '.' sorts before '/'
    assert generate_tree(["a/b.txt", "a.txt"]) == (
        "Directory Tree:\n.\n├── a.txt\n└── a\n    └── b.txt\n"
    )


def test_leading_dot_segments_and_duplicates_collapse():
    assert generate_tree(["./x.txt", "x.txt"]) == "Directory Tree:\n.\n└── x.txt\n"


def test_input_is_not_mutated():
    files = ["b.txt", "a.txt"]
    TreeGenerator().generate_tree(files)
    assert files == ["b.txt", "a.txt"]
