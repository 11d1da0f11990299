#!/usr/bin/env python3
"""
Dependency Verification Script for modulizer

Checks that the parser stack is installed and can parse the legacy
namespace code the converter works on, and prints version information.
"""

import sys
from importlib import metadata


# ANSI color codes for terminal output
class Colors:
    GREEN = '\033[92m'
    RED = '\033[91m'
    BLUE = '\033[94m'
    RESET = '\033[0m'
    BOLD = '\033[1m'


def print_success(message):
    print(f"{Colors.GREEN}✓ {message}{Colors.RESET}")


def print_error(message):
    print(f"{Colors.RED}✗ {message}{Colors.RESET}")


def print_info(message):
    print(f"{Colors.BLUE}ℹ {message}{Colors.RESET}")


def print_header(message):
    print(f"\n{Colors.BOLD}{message}{Colors.RESET}")


def _version(distribution):
    try:
        return metadata.version(distribution)
    except metadata.PackageNotFoundError:
        return "unknown"


def verify_tree_sitter():
    """Verify tree-sitter and the JavaScript grammar parse a namespace assignment."""
    try:
        import tree_sitter
        import tree_sitter_javascript

        print_success(
            f"tree-sitter {_version('tree-sitter')} with "
            f"tree-sitter-javascript {_version('tree-sitter-javascript')} installed"
        )

        parser = tree_sitter.Parser(tree_sitter.Language(tree_sitter_javascript.language()))
        test_code = b"(function() { Polymer.Foo = { bar() {} }; })();"
        tree = parser.parse(test_code)
        if tree.root_node.has_error:
            print_error(f"  tree-sitter reported syntax errors for: {test_code.decode()}")
            return False
        print_info(f"  tree-sitter parsed test code: '{test_code.decode()}'")
        return True
    except ImportError as e:
        print_error(f"tree-sitter import failed: {e}")
        return False
    except (TypeError, ValueError) as e:
        print_error(f"tree-sitter grammar could not be loaded: {e}")
        return False


def verify_html_parser():
    """Verify html.parser availability (standard library)."""
    try:
        from html.parser import HTMLParser

        links = []

        class _LinkCollector(HTMLParser):
            def handle_starttag(self, tag, attrs):
                if tag == "link":
                    links.append(dict(attrs).get("href"))

        _LinkCollector().feed('<link rel="import" href="./dep.html">')
        print_success("html.parser available (standard library)")
        print_info(f"  html.parser found import link: {links[0]}")
        return True
    except ImportError as e:
        print_error(f"html.parser import failed: {e}")
        return False


def main():
    """Main verification function."""
    print_header("=" * 60)
    print_header("modulizer - Dependency Verification")
    print_header("=" * 60)

    print_info(f"Python version: {sys.version}")
    print_info(f"Python executable: {sys.executable}")

    print_header("\nVerifying Core Dependencies:")

    results = [
        ("tree-sitter", verify_tree_sitter()),
        ("html.parser", verify_html_parser()),
    ]

    print_header("\nVerification Summary:")
    print_header("-" * 60)

    for name, passed in results:
        status = f"{Colors.GREEN}PASS{Colors.RESET}" if passed else f"{Colors.RED}FAIL{Colors.RESET}"
        print(f"  {name:20s} [{status}]")

    print_header("-" * 60)

    if all(passed for _, passed in results):
        print_success("\n✓ All dependencies verified successfully!")
        return 0

    print_error("\n✗ Some dependencies failed verification.")
    print_info("\nTo install missing dependencies, run:")
    print_info("  pip install -e .")
    return 1


if __name__ == "__main__":
    sys.exit(main())
