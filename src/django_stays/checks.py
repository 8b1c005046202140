"""System checks for django-stays."""

from django.core import checks


@checks.register()
def check_state_graphs(app_configs, **kwargs):
    """Report broken reservation or possession transition tables."""
    from .states import GRAPHS, graph_problems

    errors = []
    for name, graph in GRAPHS.items():
        for problem in graph_problems(*graph):
            errors.append(
                checks.Error(
                    f"{name} state graph: {problem}",
                    obj='django_stays.states',
                    id='stays.E001',
                )
            )
    return errors
