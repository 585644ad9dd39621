"""
Text normalization for location search.

Pure functions that turn raw location names into comparable search tokens.
Every index key and every query passes through ``normalize`` first, so two
spellings that differ only in case, punctuation, accents or spacing end up
as the same token.
"""
import re
import unicodedata
from typing import List, Optional

from .aliases import AliasTable
from .constants import LOCATION_ALIASES, DISPLAY_NAME_OVERRIDES, MIN_TERM_LENGTH

DEFAULT_ALIASES = AliasTable(LOCATION_ALIASES)

_non_word_pattern = re.compile(r'[^\w\s]', re.ASCII)
_whitespace_pattern = re.compile(r'\s+')
_vowel_pattern = re.compile(r'[aeiou]')
_non_letter_pattern = re.compile(r'[^a-z]')
_keyword_split_pattern = re.compile(r'[\s\-_]+')

PHONETIC_KEY_LENGTH = 4

def _ascii_fold(text: str) -> str:
    decomposed = unicodedata.normalize('NFKD', text)
    return ''.join(ch for ch in decomposed if not unicodedata.combining(ch))

def normalize(text: str) -> str:
    """
    Canonicalize a name for comparison.

    Lowercases, folds accented letters to ASCII, strips every character that
    is neither a word character nor whitespace, and collapses runs of
    whitespace to a single space.

    Examples:
        >>> normalize('  Kathmandu   Metropolitian-City ')
        'kathmandu metropolitiancity'
    """
    if not text:
        return ''
    text = _ascii_fold(text).lower()
    text = _non_word_pattern.sub('', text)
    text = _whitespace_pattern.sub(' ', text)
    return text.strip()

def phonetic_key(text: str) -> str:
    """Consonant skeleton of a name: vowels and non-letters dropped, first 4 letters kept."""
    key = _vowel_pattern.sub('', normalize(text))
    key = _non_letter_pattern.sub('', key)
    return key[:PHONETIC_KEY_LENGTH]

def search_terms(text: str, aliases: Optional[AliasTable] = None) -> List[str]:
    """
    Terms a location is findable under in the term index.

    Returns the normalized full name, each of its words of at least three
    characters, and every alias variation, in that order and without
    duplicates.
    """
    aliases = DEFAULT_ALIASES if aliases is None else aliases
    normalized = normalize(text)
    if not normalized:
        return []

    terms = [normalized]
    for word in normalized.split(' '):
        if len(word) >= MIN_TERM_LENGTH:
            terms.append(word)
    terms.extend(aliases.expand(normalized))
    return list(dict.fromkeys(terms))

def keywords(text: str) -> List[str]:
    """
    Keywords and keyword prefixes for the keyword index.

    Each word of at least three characters contributes itself and all of
    its prefixes of length three or more, so prefix lookups never need to
    scan the whole index.
    """
    result = []
    for word in _keyword_split_pattern.split(normalize(text)):
        if len(word) < MIN_TERM_LENGTH:
            continue
        for end in range(MIN_TERM_LENGTH, len(word) + 1):
            result.append(word[:end])
    return list(dict.fromkeys(result))

def format_location_name(name: str) -> str:
    """Display form of a raw shard name: words capitalized, known words overridden."""
    if not name:
        return ''
    return ' '.join(_format_word(word) for word in name.strip().split(' '))

def _format_word(word):
    override = DISPLAY_NAME_OVERRIDES.get(word.lower())
    if override:
        return override
    if '-' in word:
        return '-'.join(_format_word(part) for part in word.split('-'))
    return word[:1].upper() + word[1:]