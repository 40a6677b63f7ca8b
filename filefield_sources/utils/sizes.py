from __future__ import annotations


def format_size(size: int) -> str:
    if size < 1024:
        return "1 byte" if size == 1 else f"{size} bytes"
    value = float(size)
    for unit in ("KB", "MB", "GB", "TB"):
        value /= 1024
        if value < 1024 or unit == "TB":
            return f"{round(value, 2):g} {unit}"
    return f"{size} bytes"


def size_message(size: int, max_filesize: int) -> str:
    return (
        f"The file is {format_size(size)} exceeding the maximum file size of "
        f"{format_size(max_filesize)}."
    )
