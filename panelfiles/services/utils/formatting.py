"""Helper functions for presenting listing values."""


def format_size(size_bytes: int) -> str:
    if size_bytes <= 0:
        return "0 B"

    units = ["B", "KB", "MB", "GB", "TB"]
    index = 0
    size = float(size_bytes)

    while size >= 1024 and index < len(units) - 1:
        size /= 1024.0
        index += 1

    if index == 0:
        return f"{int(size)} B"
    return f"{size:.2f}".rstrip("0").rstrip(".") + f" {units[index]}"
