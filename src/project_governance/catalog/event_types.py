"""Event type keys.

Keys are namespaced ``<aggregate>.<action>``.  The catalog in
``registry.py`` is the only place that decides which of these exist;
these constants just keep call sites free of string typos.
"""

PROJECT_STARTED = "project.started"
TITLE_CHANGED = "project.title_changed"
DESCRIPTION_CHANGED = "project.description_changed"
START_DATE_CHANGED = "project.start_date_changed"
END_DATE_CHANGED = "project.end_date_changed"
OWNING_ORG_NODE_CHANGED = "project.owning_org_node_changed"
CUSTOM_FIELD_VALUE_SET = "project.custom_field_value_set"
PRODUCT_ADDED = "project.product_added"
PRODUCT_REMOVED = "project.product_removed"
PRODUCTS_BULK_IMPORTED = "project.products_bulk_imported"
PROJECT_ROLE_ASSIGNED = "project.project_role_assigned"
PROJECT_ROLE_UNASSIGNED = "project.project_role_unassigned"
AFFILIATED_ORGANISATION_ADDED = "project.affiliated_organisation_added"
AFFILIATED_ORGANISATION_REMOVED = "project.affiliated_organisation_removed"
