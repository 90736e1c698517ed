"""Sample desk schemas used across the compiler tests."""


def task_schema():
    return {
        "fields": [
            {"fieldname": "title", "fieldtype": "Data", "label": "Title", "reqd": 1, "in_list_view": 1, "idx": 0},
            {"fieldname": "status", "fieldtype": "Select", "options": "Open\nWorking\nClosed",
             "default": "Open", "in_list_view": 1, "in_standard_filter": 1, "idx": 1},
            {"fieldname": "description", "fieldtype": "Text Editor", "idx": 2},
        ],
    }


def sales_order_schema():
    return {
        "fields": [
            {"fieldname": "customer", "fieldtype": "Link", "options": "Customer", "reqd": 1, "in_list_view": 1, "idx": 2},
            {"fieldname": "transaction_date", "fieldtype": "Date", "in_list_view": 1, "idx": 1},
            {"fieldname": "col_1", "fieldtype": "Column Break"},
            {"fieldname": "priority", "fieldtype": "Select", "options": "Low\nHigh\nUrgent"},
            {"fieldname": "delivery_date", "fieldtype": "Date",
             "depends_on": "eval:doc.priority in ['High', 'Urgent']",
             "mandatory_depends_on": "eval:doc.priority == 'Urgent'"},
            {"fieldname": "items_section", "fieldtype": "Section Break", "label": "Items"},
            {"fieldname": "items", "fieldtype": "Table", "options": "Sales Order Item"},
            {"fieldname": "notes_tab", "fieldtype": "Tab Break", "label": "Notes"},
            {"fieldname": "notes", "fieldtype": "Small Text", "read_only_depends_on": "doc.status = 'Closed'"},
            {"fieldname": "signature_blob", "fieldtype": "Quantum Field"},
        ],
        "overrides": [
            {"fieldname": "transaction_date", "label": "Order Date", "reqd": 1},
            {"fieldname": "ghost_field", "hidden": 1},
        ],
        "client_scripts": [
            {
                "name": "SO Form Script",
                "view": "Form",
                "enabled": 1,
                "script": "frappe.ui.form.on('Sales Order', {\n"
                          "  refresh(frm) { frm.set_intro('hi'); },\n"
                          "  customer: function(frm) { frm.set_value('priority', 'High'); }\n"
                          "});",
            },
        ],
        "workflow": {
            "workflow_name": "SO Approval",
            "is_active": 1,
            "workflow_state_field": "workflow_state",
            "states": [
                {"state": "Draft", "doc_status": 0},
                {"state": "Approved", "doc_status": 1},
            ],
            "transitions": [
                {"state": "Draft", "action": "Approve", "next_state": "Approved", "allowed": "Sales Manager"},
                {"state": "Draft", "action": "Reject", "next_state": "Rejected", "allowed": "Sales Manager"},
            ],
        },
        "permissions": [
            {"role": "Sales User", "permlevel": 0, "read": 1, "write": 1, "create": 1},
            {"role": "Sales Manager", "permlevel": 0, "read": 1, "write": 1, "create": 1, "delete": 1, "submit": 1},
        ],
    }


def sales_order_item_schema():
    return {
        "fields": [
            {"fieldname": "item_code", "fieldtype": "Link", "options": "Item", "reqd": 1},
            {"fieldname": "qty", "fieldtype": "Float", "default": 1},
            {"fieldname": "rate", "fieldtype": "Currency", "depends_on": "eval:doc.qty > 0"},
            # Points back at the parent; must stay a plain descriptor
            {"fieldname": "parent_orders", "fieldtype": "Table", "options": "Sales Order"},
        ],
    }
