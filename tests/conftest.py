"""Shared test configuration and fixtures."""

from pathlib import Path

import pytest
from dotenv import load_dotenv

# Load .env from project root for all tests
root = Path(__file__).parent.parent.resolve()
load_dotenv(root / ".env")


@pytest.fixture
def simple_table() -> list[str]:
    return [
        "Name    Age  City",
        "John    25   NYC",
        "Alice   30   LA",
        "Bob     22   SF",
    ]


@pytest.fixture
def ls_output() -> list[str]:
    return [
        "Permissions Size User   Date Modified    Name",
        "drwxr-xr-x     - kumiko 2025-06-17 22:24 .git",
        ".rw-r--r--   570 kumiko 2025-06-10 23:39 .gitignore",
        "drwxr-xr-x     - kumiko 2025-06-17 00:42 build",
        "drwxr-xr-x     - kumiko 2025-06-10 23:40 cmd",
    ]


@pytest.fixture
def docker_rows() -> list[str]:
    return [
        'aa145ac35bbc   mysql:latest      "docker-entrypoint.s…"   13 months ago   Up 2 days',
        'e354d62bbe17   postgres:latest   "docker-entrypoint.s…"   13 months ago   Up 2 days',
    ]


@pytest.fixture
def checksum_lines() -> list[str]:
    return [
        "github.com/adrg/xdg v0.5.3 h1:xRnxJXne7+oWDatRhR1JLnvuccuIeCoBu2rtuLqQB78=",
        "github.com/adrg/xdg v0.5.3/go.mod h1:nlTsY+NNiCBGCK2tpm09vRqfVzrc2fLmXGpBLF0zlTQ=",
        "github.com/cpuguy83/go-md2man/v2 v2.0.6/go.mod h1:oOW0eioCTA6cOiMLiUPZOpcVxMig6NIQQ7OS05n1F4g=",
    ]


@pytest.fixture
def file_listing() -> list[str]:
    return [
        "File Name      Last Modified     Size",
        "document.txt   2023-01-15 10:30  1.2KB",
        "image.jpg      2023-01-14 09:15  856KB",
        "archive.zip    2023-01-13 14:22  45.3MB",
    ]
