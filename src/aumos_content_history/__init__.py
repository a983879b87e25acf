"""AumOS Content History: audited document mutations with snapshot restore.

Captures a redacted, fully expanded before and after snapshot of every
create, update, delete, publish and unpublish routed through the document
pipeline, stores each as an immutable audit record, and restores documents
from those snapshots.
"""

__version__ = "0.1.0"
