"""Task-lifecycle loop: poll pending tasks, claim, execute, complete.

Coupling with the dashboard is only through store rows. A claim is one
conditional UPDATE (``status = pending AND assigned_to IS NULL``), so two
workers polling the same store cannot both take a task; everything else about
running several workers side by side is left to deployment.
"""
