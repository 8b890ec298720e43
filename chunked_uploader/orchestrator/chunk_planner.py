"""Split a file size into ordered part ranges."""
import math
from typing import List

from ..errors import InvalidArgumentError
from ..models import ChunkTask


def part_size_for(file_size: int, chunk_size: int) -> int:
    if chunk_size <= 0:
        raise InvalidArgumentError("chunk_size must be greater than 0")
    return min(chunk_size, file_size)


def count_parts(file_size: int, chunk_size: int) -> int:
    if file_size <= 0:
        return 0
    return math.ceil(file_size / part_size_for(file_size, chunk_size))


def plan_chunks(file_size: int, chunk_size: int) -> List[ChunkTask]:
    """
    Partition [0, file_size) into parts of at most chunk_size bytes.

    Part numbers start at 1; only the last part may be shorter.
    """
    if file_size <= 0:
        part_size_for(file_size, chunk_size)
        return []

    part_size = part_size_for(file_size, chunk_size)
    tasks = []
    position = 0
    part_number = 1
    while position < file_size:
        length = min(part_size, file_size - position)
        tasks.append(ChunkTask(position=position, length=length, part_number=part_number))
        position += length
        part_number += 1
    return tasks
