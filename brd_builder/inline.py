from dataclasses import dataclass


@dataclass(frozen=True)
class InlineRun:
    text: str
    bold: bool = False
    italic: bool = False


def tokenize(line):
    """Split one line into plain/bold/italic runs.

    ``**`` toggles bold and a single ``*`` toggles italic. Markers left open
    at the end of the line close implicitly. The result is never empty.
    """
    runs = []
    buffer = []
    bold = False
    italic = False
    saw_marker = False
    i = 0

    def flush():
        if buffer:
            runs.append(InlineRun("".join(buffer), bold, italic))
            buffer.clear()

    while i < len(line):
        if line[i] == "*":
            saw_marker = True
            flush()
            if line.startswith("**", i):
                bold = not bold
                i += 2
            else:
                italic = not italic
                i += 1
            continue
        buffer.append(line[i])
        i += 1
    flush()

    if not runs:
        return [InlineRun("" if saw_marker else line)]
    return runs


def strip_markers(text):
    return text.replace("*", "")


def clean_text(text):
    return text.replace("*", "").replace("`", "").strip()


def runs_text(runs):
    return "".join(run.text for run in runs)
