"""
Minimal CSV reader/writer for review import and export.

Rows are single physical lines. Quoted fields may contain commas and
doubled quotes but not line breaks.
"""


def parse_row(line: str) -> list[str]:
    values = []
    current = []
    in_quotes = False
    i = 0

    while i < len(line):
        char = line[i]

        if char == '"':
            if in_quotes and i + 1 < len(line) and line[i + 1] == '"':
                current.append('"')
                i += 1
            else:
                in_quotes = not in_quotes
        elif char == "," and not in_quotes:
            values.append("".join(current).strip())
            current = []
        else:
            current.append(char)

        i += 1

    values.append("".join(current).strip())
    return values


def quote(value) -> str:
    text = "" if value is None else str(value)
    return '"' + text.replace('"', '""') + '"'


def write_csv(headers, rows) -> str:
    """Rows must already hold their final cell text (quoted where needed)."""
    lines = [",".join(headers)]
    lines.extend(",".join("" if cell is None else str(cell) for cell in row) for row in rows)
    return "\n".join(lines)


def split_lines(content: str) -> list[str]:
    return [line for line in content.split("\n") if line.strip()]
