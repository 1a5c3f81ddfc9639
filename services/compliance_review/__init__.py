"""
Compliance Review Service
=========================

Reviews medical device submissions against the regulation corpus.

Pipeline:
1. Extract text from the uploaded PDF (vision OCR for image-only files)
2. Chunk and optionally embed the text
3. Run the deterministic rule battery over the full text
4. Ask the model for further issues, per chunk or for the whole document
5. Rank issues, derive the verdict and persist the analysis
"""

__version__ = "0.1.0"
