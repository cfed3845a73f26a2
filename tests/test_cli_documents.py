"""Tests for budget, purchase order, sales order, vendor bill and invoice commands."""

import json

from budgetkit.cli.main import cli


def run(cli_runner, temp_db, *args):
    return cli_runner.invoke(cli, ["--db-path", temp_db.database_path, *args])


def test_budget_create_confirm_show(cli_runner, temp_db, master_data):
    result = run(
        cli_runner,
        temp_db,
        "budget",
        "create",
        "Festive 2026",
        "--start",
        "2026-10-01",
        "--end",
        "2026-12-31",
        "--line",
        "Deepawali:2,80,000",
        "--line",
        "Marriage Session 2026:50000",
    )
    assert result.exit_code == 0
    assert "Created budget 'Festive 2026' (ID: 1)" in result.output

    result = run(cli_runner, temp_db, "budget", "confirm", "1")
    assert result.exit_code == 0
    assert "Budget 1 confirmed" in result.output

    result = run(cli_runner, temp_db, "budget", "show", "1")
    assert result.exit_code == 0
    assert "Status: confirmed" in result.output
    assert "280000.00" in result.output


def test_budget_delete(cli_runner, temp_db, confirmed_budget):
    result = run(cli_runner, temp_db, "budget", "delete", str(confirmed_budget.id))
    assert result.exit_code == 1
    assert "delete" in result.output

    run(cli_runner, temp_db, "budget", "revise", str(confirmed_budget.id), "--date", "2026-10-16")
    result = run(cli_runner, temp_db, "budget", "delete", "2")
    assert result.exit_code == 0
    assert "Deleted budget 2" in result.output

    result = run(cli_runner, temp_db, "budget", "show", str(confirmed_budget.id))
    assert "Status: confirmed" in result.output


def test_budget_requires_dates(cli_runner, temp_db, master_data):
    result = run(cli_runner, temp_db, "budget", "create", "Festive 2026", "--line", "Deepawali:1000")
    assert result.exit_code != 0
    assert "--start" in result.output


def test_budget_invalid_line(cli_runner, temp_db, master_data):
    result = run(
        cli_runner, temp_db, "budget", "create", "Festive", "--period", "this-year", "--line", "Deepawali"
    )
    assert result.exit_code == 1
    assert "expected ANALYTIC:AMOUNT" in result.output


def test_budget_revise(cli_runner, temp_db, confirmed_budget):
    result = run(cli_runner, temp_db, "budget", "revise", str(confirmed_budget.id), "--date", "2026-10-16")
    assert result.exit_code == 0
    assert "Created revision 'Festive 2026 (Rev 16 10 2026)'" in result.output

    result = run(cli_runner, temp_db, "budget", "show", str(confirmed_budget.id))
    assert "Status: revised" in result.output
    assert "Revised by budget" in result.output


def test_budget_check(cli_runner, temp_db, confirmed_budget):
    result = run(
        cli_runner, temp_db, "budget", "check", str(confirmed_budget.id), "--analytic", "Deepawali", "--amount", "300000"
    )
    assert result.exit_code == 0
    assert "Amount exceeds the remaining budget of 280000.00" in result.output

    result = run(
        cli_runner, temp_db, "budget", "check", str(confirmed_budget.id), "--analytic", "Deepawali", "--amount", "1000"
    )
    assert "fits within" in result.output


def test_bill_lifecycle_updates_budget(cli_runner, temp_db, confirmed_budget):
    result = run(
        cli_runner,
        temp_db,
        "bill",
        "create",
        "--partner",
        "Azure Interior",
        "--date",
        "2026-10-15",
        "--line",
        "Chair:1:16350:Deepawali",
    )
    assert result.exit_code == 0
    assert "Created Vendor Bill BILL/2026/0001 (ID: 1)" in result.output

    result = run(cli_runner, temp_db, "bill", "confirm", "1")
    assert result.exit_code == 0
    assert "Vendor Bill BILL/2026/0001 confirmed" in result.output

    result = run(cli_runner, temp_db, "budget", "show", str(confirmed_budget.id))
    assert "5.84%" in result.output
    assert "263650.00" in result.output

    result = run(cli_runner, temp_db, "budget", "details", str(confirmed_budget.id), "--analytic", "Deepawali")
    assert result.exit_code == 0
    assert "BILL/2026/0001" in result.output

    result = run(cli_runner, temp_db, "bill", "pay", "1", "6,350", "--method", "cash", "--date", "2026-10-20")
    assert result.exit_code == 0
    assert "Recorded cash payment of 6350.00 on BILL/2026/0001" in result.output
    assert "Status: partial" in result.output

    result = run(cli_runner, temp_db, "bill", "pay", "1", "20000")
    assert result.exit_code == 1
    assert "exceeds amount due 10000.00" in result.output

    result = run(cli_runner, temp_db, "bill", "cancel", "1")
    assert result.exit_code == 1

    result = run(cli_runner, temp_db, "bill", "payments", "1")
    assert "cash" in result.output
    assert "6350.00" in result.output


def test_bill_pay_json(cli_runner, temp_db, master_data, make_document):
    bill = make_document(master_data["azure"], "16350", analytic_id=master_data["deepawali"])

    result = run(cli_runner, temp_db, "--json", "bill", "pay", str(bill.id), "16350")
    assert result.exit_code == 0
    payload = json.loads(result.output)
    assert payload["success"] is True
    assert payload["data"]["payment_status"] == "paid"
    assert payload["data"]["amount_due"] == "0.00"
    assert payload["data"]["paid_amount"] == "16350.00"


def test_document_kind_mismatch(cli_runner, temp_db, master_data, make_document):
    bill = make_document(master_data["azure"], "1000", analytic_id=master_data["office"])
    result = run(cli_runner, temp_db, "invoice", "show", str(bill.id))
    assert result.exit_code == 1
    assert "not found" in result.output


def test_invalid_line_format(cli_runner, temp_db, master_data):
    result = run(cli_runner, temp_db, "bill", "create", "--partner", "Azure Interior", "--line", "Chair:1")
    assert result.exit_code == 1
    assert "expected PRODUCT:QTY:PRICE[:ANALYTIC]" in result.output


def test_confirm_without_partner(cli_runner, temp_db, master_data):
    result = run(cli_runner, temp_db, "invoice", "create", "--line", "Chair:2:2200:Festive Sales")
    assert result.exit_code == 0
    assert "INV/" in result.output

    result = run(cli_runner, temp_db, "invoice", "confirm", "1")
    assert result.exit_code == 1
    assert "customer" in result.output


def test_auto_assign_from_rule(cli_runner, temp_db, rule_service, master_data):
    rule_id = rule_service.create_rule(
        name="VIP furniture",
        analytic_id=master_data["marriage"],
        partner_tag_id=master_data["vip"],
        product_category_id=master_data["furniture"],
    )
    rule_service.confirm_rule(rule_id)

    result = run(
        cli_runner, temp_db, "bill", "create", "--partner", "Azure Interior", "--date", "2026-10-15",
        "--line", "Chair:2:1500",
    )
    assert result.exit_code == 0

    result = run(cli_runner, temp_db, "bill", "show", "1")
    assert "Marriage Session 2026 [auto]" in result.output


def test_purchase_order_to_bill(cli_runner, temp_db, master_data):
    result = run(
        cli_runner, temp_db, "po", "create", "--partner", "Gemini Furniture", "--date", "2026-10-10",
        "--line", "Dining Table:1:9000:Office Setup",
    )
    assert result.exit_code == 0
    assert "PO00001" in result.output

    result = run(cli_runner, temp_db, "po", "bill", "1")
    assert result.exit_code == 1

    assert run(cli_runner, temp_db, "po", "confirm", "1").exit_code == 0

    result = run(cli_runner, temp_db, "po", "bill", "1", "--date", "2026-10-20")
    assert result.exit_code == 0
    assert "Created vendor bill BILL/2026/0001 (ID: 2)" in result.output

    result = run(cli_runner, temp_db, "bill", "show", "2")
    assert "Ref:      PO00001" in result.output
    assert "Source:   document 1" in result.output

    result = run(cli_runner, temp_db, "po", "cancel", "1")
    assert result.exit_code == 1

    assert run(cli_runner, temp_db, "bill", "cancel", "2").exit_code == 0
    result = run(cli_runner, temp_db, "po", "cancel", "1")
    assert result.exit_code == 0
    assert "Purchase Order PO00001 cancelled" in result.output


def test_send_invoice(cli_runner, temp_db, master_data, make_document):
    from budgetkit.domain.entities import DocumentKind

    invoice = make_document(
        master_data["deco_addict"], "2200", analytic_id=master_data["sales"], kind=DocumentKind.CUSTOMER_INVOICE
    )
    result = run(cli_runner, temp_db, "invoice", "send", str(invoice.id))
    assert result.exit_code == 0
    assert f"Customer Invoice {invoice.document_no} marked as sent" in result.output


def test_list_documents(cli_runner, temp_db, master_data, make_document):
    make_document(master_data["azure"], "1000", analytic_id=master_data["office"])
    result = run(cli_runner, temp_db, "bill", "list", "--status", "confirmed")
    assert result.exit_code == 0
    assert "BILL/2026/0001" in result.output

    result = run(cli_runner, temp_db, "po", "list")
    assert "No purchase orders found." in result.output


def test_sales_order_to_invoice(cli_runner, temp_db, master_data):
    result = run(
        cli_runner, temp_db, "so", "create", "--partner", "Deco Addict", "--date", "2026-10-10",
        "--line", "Chair:2:2200:Festive Sales",
    )
    assert result.exit_code == 0
    assert "SO00001" in result.output

    assert run(cli_runner, temp_db, "so", "confirm", "1").exit_code == 0

    result = run(cli_runner, temp_db, "so", "invoice", "1", "--date", "2026-10-20")
    assert result.exit_code == 0
    assert "Created customer invoice INV/2026/0001 (ID: 2)" in result.output

    result = run(cli_runner, temp_db, "invoice", "show", "2")
    assert "Ref:      SO00001" in result.output

    result = run(cli_runner, temp_db, "so", "cancel", "1")
    assert result.exit_code == 1
    assert "customer invoice INV/2026/0001 was created from it" in result.output


def test_delete_draft_document(cli_runner, temp_db, master_data, make_document):
    draft = make_document(master_data["azure"], "1000", analytic_id=master_data["office"], confirm=False)
    confirmed = make_document(master_data["azure"], "500", analytic_id=master_data["office"])

    result = run(cli_runner, temp_db, "bill", "delete", str(draft.id))
    assert result.exit_code == 0
    assert f"Deleted Vendor Bill {draft.document_no}" in result.output

    result = run(cli_runner, temp_db, "bill", "delete", str(confirmed.id))
    assert result.exit_code == 1
    assert "delete" in result.output
