"""
Fuzzy description matching.

Bank descriptions drift between the pending and posted forms of a
transaction, and between one month's bill payment and the next. Two
descriptions are considered the same when, after lowercasing and trimming,
the first of these rules holds:

1. they are equal;
2. one contains the other;
3. both contain a pipe separator and the merchant names before the first
   pipe (the leading run of letters and spaces) are equal and at least
   ``merchant_min_length`` characters long, e.g.
   "SHELL OIL 12345 | SHELL OIL 12345" and "SHELL OIL 99999 | ...";
4. their word sets overlap by at least ``overlap_ratio`` of the larger set,
   or share at least ``min_common_words`` words.
"""

import re

from ledger_reconcile.utils import DEFAULT_SETTINGS

_MERCHANT_RE = re.compile(r'^([a-z\s]+)')
_NON_ALNUM_RE = re.compile(r'[^a-z0-9]')

def normalize_text(text):
    return str(text).lower().strip()

def merchant_token(description):
    """Return the merchant name before the first pipe, or '' if none."""
    first_part = normalize_text(description).split('|')[0].strip()
    match = _MERCHANT_RE.match(first_part)
    return match.group(1).strip() if match else ''

def word_tokens(description, clean=False, min_length=1):
    """Split a description into a set of words.

    Args:
        description (str): Text to split
        clean (bool): Strip non-alphanumeric characters from each word
        min_length (int): Drop words shorter than this (after cleaning)

    Returns:
        set: Unique words
    """
    words = normalize_text(description).split()
    if clean:
        words = [_NON_ALNUM_RE.sub('', word) for word in words]
    return {word for word in words if word and len(word) >= min_length}

def word_overlap(a_words, b_words):
    """Return (common word count, ratio of common words to the larger set)."""
    total = max(len(a_words), len(b_words))
    if total == 0:
        return 0, 0.0
    common = len(a_words & b_words)
    return common, common / total

def descriptions_match(a, b, overlap_ratio, min_common_words=None, clean_tokens=False,
                       min_token_length=1, merchant_min_length=3):
    """Decide whether two descriptions refer to the same payee.

    Args:
        a (str): First description
        b (str): Second description
        overlap_ratio (float): Minimum common-word ratio (0-1)
        min_common_words (int, optional): Common-word count that is always enough
        clean_tokens (bool): Strip punctuation from words before comparing
        min_token_length (int): Ignore words shorter than this
        merchant_min_length (int): Minimum merchant name length for the pipe rule

    Returns:
        bool: True if any rule matches
    """
    a_norm = normalize_text(a)
    b_norm = normalize_text(b)

    if a_norm == b_norm:
        return True

    # Empty text is contained in everything
    if not a_norm or not b_norm:
        return False

    if a_norm in b_norm or b_norm in a_norm:
        return True

    if '|' in a_norm and '|' in b_norm:
        a_merchant = merchant_token(a_norm)
        b_merchant = merchant_token(b_norm)
        if (len(a_merchant) >= merchant_min_length and len(b_merchant) >= merchant_min_length
                and a_merchant == b_merchant):
            return True

    a_words = word_tokens(a_norm, clean=clean_tokens, min_length=min_token_length)
    b_words = word_tokens(b_norm, clean=clean_tokens, min_length=min_token_length)
    common, ratio = word_overlap(a_words, b_words)
    if common == 0:
        return False
    if ratio >= overlap_ratio:
        return True
    return min_common_words is not None and common >= min_common_words

def pending_descriptions_match(a, b, settings=DEFAULT_SETTINGS):
    """Matching used to pair a pending transaction with its posted form."""
    return descriptions_match(
        a, b,
        overlap_ratio=settings.pending_word_overlap,
        merchant_min_length=settings.merchant_min_length,
    )

def bill_descriptions_match(bill_description, tx_description, settings=DEFAULT_SETTINGS):
    """Matching used to link a transaction to a recurring bill."""
    return descriptions_match(
        bill_description, tx_description,
        overlap_ratio=settings.bill_word_overlap,
        min_common_words=settings.bill_min_common_words,
        clean_tokens=True,
        min_token_length=settings.min_token_length,
        merchant_min_length=settings.merchant_min_length,
    )
