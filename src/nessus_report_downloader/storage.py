"""Local storage of downloaded report artifacts."""
import os


def ensure_output_dir(path):
    """Create `path` (and parents) if it does not exist yet and return it."""
    os.makedirs(path, exist_ok=True)
    return path


def write_artifact(directory, filename, body):
    """Write a response body verbatim to `directory/filename` and return the path."""
    path = os.path.join(directory, filename)
    if isinstance(body, str):
        body = body.encode("utf-8")
    with open(path, "wb") as fh:
        fh.write(body)
    return path
