"""Shared fixtures for core unit tests"""

import pytest

from mdoutline.core.parse import parse_text


SAMPLE_MD = """\
---
title: Design Notes
---

<!-- toc -->
- [1. Introduction\t1](#heading=h.intro)
  - [1.1. Scope\t1](#heading=h.scope)
- [2. Methods\t2](#heading=h.methods)
- [Annex A: Data\t3](#heading=h.annex)
  - [Raw tables\t3](#heading=h.raw)
<!-- /toc -->

# Introduction {#h.intro}

This report follows [the methods](#heading=h.methods) closely.

## Scope {#h.scope}

See [old section](#heading=h.gone) and [the site](https://example.com).

# Methods {#h.methods}

```python
print("# not a heading")
```

# Annex A: Data {#h.annex}

## Raw tables {#h.raw}
"""


@pytest.fixture(name="sample_md")
def sample_md_fixture():
    return SAMPLE_MD


@pytest.fixture(name="sample_doc")
def sample_doc_fixture():
    return parse_text(SAMPLE_MD)
