import io
from typing import Union

import pdfplumber


def extract_resume_text(source: Union[str, bytes]) -> str:
    """Plain text of every page of a résumé PDF, pages separated by blank lines."""
    handle = io.BytesIO(source) if isinstance(source, bytes) else source
    pages = []
    with pdfplumber.open(handle) as pdf:
        for page in pdf.pages:
            text = (page.extract_text() or "").strip()
            if text:
                pages.append(text)
    return "\n\n".join(pages)
