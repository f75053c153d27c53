import os
import sys
from pathlib import Path
from typing import Optional

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from jlsp.navigator import SymbolLocation
from jlsp.session import Session

FIXTURES = Path(__file__).parent / "fixtures"


def load_fixture(name: str) -> str:
    return (FIXTURES / name).read_text(encoding="utf-8")


def make_session(text: str, uri: str = "file:///tmp/pipeline.groovy") -> Session:
    return Session(uri, text)


@pytest.fixture
def create_files(tmp_path):
    """A factory fixture that writes a {relative path: content} tree under tmp_path."""

    def _create_files(file_dict):
        for file_path, content in file_dict.items():
            path = tmp_path / file_path
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        return tmp_path

    return _create_files


class FakeLibrary:
    """A library with one script, `foo`, exposing `helper`."""

    uri = "file:///lib/vars/foo.groovy"

    def has_script(self, name: str) -> bool:
        return name == "foo"

    def find_method(self, script: str, method: str) -> Optional[SymbolLocation]:
        if script == "foo" and method == "helper":
            return SymbolLocation(line=3, column=4, name="helper", kind="method", uri=self.uri)
        return None

    def entry_point(self, name: str) -> Optional[SymbolLocation]:
        return SymbolLocation(line=0, column=4, name="call", kind="method", uri=self.uri) if name == "foo" else None
