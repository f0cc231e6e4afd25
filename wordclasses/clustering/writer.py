"""Serialization of the final word class assignments."""

import logging
from typing import Mapping, TextIO, Union

from wordclasses.schema.cluster import OutputFormat

logger = logging.getLogger(__name__)


def format_assignment(word: str, class_id: int, fmt: OutputFormat) -> str:
    """
    One output line for one word.

    ``tsv`` gives ``word<TAB>class``; ``srilm`` gives the class-LM form
    ``class 1.0 word`` with a fixed unigram weight.
    """
    if fmt == OutputFormat.TSV:
        return f"{word}\t{class_id}\n"
    if fmt == OutputFormat.SRILM:
        return f"{class_id} 1.0 {word}\n"
    raise ValueError(f"Unsupported output format: {fmt}")


def write_assignments(word_to_class: Mapping[str, int], out: TextIO,
                      fmt: Union[OutputFormat, str] = OutputFormat.TSV) -> int:
    """
    Write every word of the mapping, in mapping order.

    Returns:
        Number of lines written
    """
    fmt = OutputFormat(fmt.lower() if isinstance(fmt, str) else fmt)
    logger.info(f"Writing final class assignments in {fmt.value.upper()} format")
    num_lines = 0
    for word, class_id in word_to_class.items():
        out.write(format_assignment(word, class_id, fmt))
        num_lines += 1
    return num_lines
