import subprocess

def check_graphviz_installed():
    try:
        subprocess.run(["dot", "-V"], check=True, stdout=subprocess.PIPE, stderr=subprocess.PIPE)
        return True
    except (subprocess.CalledProcessError, FileNotFoundError):
        return False

def sorted_labels(labels):
    """Labels in a deterministic order. Labels of one type use their own ordering,
       mixed int/str alphabets are grouped by type name first."""
    return sorted(labels, key=lambda l: (type(l).__name__, l))
