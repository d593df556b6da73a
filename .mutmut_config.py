"""
Mutation testing configuration for mutmut.

Mutates the full sync engine under src/fullsync (see [tool.mutmut] in
pyproject.toml). Metric declarations, CLI help text and log lines are
skipped: mutants there survive every test without telling us anything.
"""

SKIPPED_PACKAGES = ('fullsync/cli/',)

SKIPPED_PREFIXES = (
    'logger.',
    'logging.',
    'print(',
    'help=',
    'get_or_create_metric(',
)


def pre_mutation(context):
    """
    Hook called before each mutation.

    Skips files and source lines whose mutants only change output text.
    """
    if 'tests/' in context.filename or context.filename.endswith('__init__.py'):
        context.skip = True
        return

    if any(package in context.filename for package in SKIPPED_PACKAGES):
        context.skip = True
        return

    line = context.current_source_line.strip()

    if line.startswith(SKIPPED_PREFIXES) or line == 'pass':
        context.skip = True

    # Docstrings and metric help strings
    if '"""' in line or "'''" in line:
        context.skip = True

    # Metric names inside get_or_create_metric(lambda: Counter("fullsync_...", ...))
    if line.startswith('"fullsync_') or line.startswith("'fullsync_"):
        context.skip = True
