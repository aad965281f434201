from io import BytesIO

import pytest
from PIL import Image

SAMPLE_BRD = """# Project Apollo

## Executive Summary
The Apollo Platform is a claims automation initiative for regional insurers.

## 1. Scope
This project covers **claims intake** and *triage*.

- Online claim submission
- Automated document checks

| Requirement | Priority |
|---|---|
| Claim capture | Must Have |
| Fraud scoring | Should Have |

---

## 2. Current State/As-Is
Claims are keyed in by hand.

### 2.1 Business Process Map Diagram
```mermaid
flowchart TD
    A[Submit claim] --> B[Review]
    style A fill:#f9f
```

## 3. Business Requirements
#### User Story A1: Claim capture
Claimants upload documents from the portal.
"""


@pytest.fixture
def sample_brd():
    return SAMPLE_BRD


@pytest.fixture
def png_bytes():
    buffer = BytesIO()
    Image.new("RGB", (10, 10), color=(0, 102, 204)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def bmp_bytes():
    buffer = BytesIO()
    Image.new("RGB", (10, 10), color=(255, 0, 0)).save(buffer, format="BMP")
    return buffer.getvalue()
