"""Tests for analytic, contact, product, category, tag and rule commands."""

import json

from budgetkit.cli.main import cli


def run(cli_runner, temp_db, *args):
    return cli_runner.invoke(cli, ["--db-path", temp_db.database_path, *args])


def test_analytic_create_and_list(cli_runner, temp_db):
    result = run(cli_runner, temp_db, "analytic", "create", "Deepawali", "--start", "2026-10-01", "--end", "2026-11-15")
    assert result.exit_code == 0
    assert "Created analytic 'Deepawali'" in result.output

    result = run(cli_runner, temp_db, "analytic", "list")
    assert result.exit_code == 0
    assert "Deepawali" in result.output
    assert "2026-10-01 to 2026-11-15" in result.output


def test_analytic_list_empty(cli_runner, temp_db):
    result = run(cli_runner, temp_db, "analytic", "list")
    assert result.exit_code == 0
    assert "No analytics found" in result.output


def test_analytic_duplicate(cli_runner, temp_db):
    run(cli_runner, temp_db, "analytic", "create", "Deepawali")
    result = run(cli_runner, temp_db, "analytic", "create", "Deepawali")
    assert result.exit_code == 1
    assert "already exists" in result.output


def test_analytic_inverted_dates(cli_runner, temp_db):
    result = run(cli_runner, temp_db, "analytic", "create", "Bad", "--start", "2026-11-01", "--end", "2026-10-01")
    assert result.exit_code == 1
    assert "End date" in result.output


def test_analytic_archive_by_name(cli_runner, temp_db, analytic_service):
    analytic_id = analytic_service.create_analytic(name="Office Setup")
    result = run(cli_runner, temp_db, "analytic", "archive", "Office Setup")
    assert result.exit_code == 0
    assert f"Analytic {analytic_id} archived" in result.output

    result = run(cli_runner, temp_db, "analytic", "show", str(analytic_id))
    assert "archived" in result.output

    result = run(cli_runner, temp_db, "analytic", "unarchive", "Office Setup")
    assert result.exit_code == 0
    assert "restored" in result.output


def test_analytic_delete_requires_confirmation(cli_runner, temp_db, analytic_service):
    analytic_service.create_analytic(name="Temporary")

    result = cli_runner.invoke(
        cli, ["--db-path", temp_db.database_path, "analytic", "delete", "Temporary"], input="n\n"
    )
    assert result.exit_code == 0
    assert "Deletion cancelled" in result.output

    result = run(cli_runner, temp_db, "analytic", "delete", "Temporary", "--yes")
    assert result.exit_code == 0
    assert "Deleted analytic 'Temporary'" in result.output


def test_analytic_unknown(cli_runner, temp_db):
    result = run(cli_runner, temp_db, "analytic", "show", "Nope")
    assert result.exit_code == 1
    assert "not found" in result.output


def test_analytic_json_output(cli_runner, temp_db):
    result = run(cli_runner, temp_db, "--json", "analytic", "create", "Deepawali", "--type", "income")
    assert result.exit_code == 0
    payload = json.loads(result.output)
    assert payload["success"] is True
    assert payload["data"]["name"] == "Deepawali"
    assert payload["data"]["analytic_type"] == "income"
    assert payload["data"]["status"] == "new"


def test_json_failure_envelope(cli_runner, temp_db):
    result = cli_runner.invoke(cli, ["--db-path", temp_db.database_path, "--json", "analytic", "show", "99"])
    assert result.exit_code == 1
    payload = json.loads(result.output)
    assert payload == {"success": False, "data": {"error": "not_found"}, "message": "Analytic 99 not found"}


def test_category_tag_contact_product(cli_runner, temp_db):
    assert run(cli_runner, temp_db, "category", "create", "Furniture").exit_code == 0
    assert run(cli_runner, temp_db, "tag", "create", "vip", "--display-name", "VIP").exit_code == 0

    result = run(
        cli_runner, temp_db, "contact", "create", "Azure Interior", "--email", "azure@example.com", "--tag", "vip"
    )
    assert result.exit_code == 0
    assert "Created contact 'Azure Interior'" in result.output

    result = run(
        cli_runner, temp_db, "product", "create", "Chair", "--category", "Furniture", "--purchase-price", "1,500"
    )
    assert result.exit_code == 0

    result = run(cli_runner, temp_db, "contact", "list")
    assert "Azure Interior" in result.output
    assert "VIP" in result.output

    result = run(cli_runner, temp_db, "product", "list", "--category", "Furniture")
    assert "Chair" in result.output
    assert "1500.00" in result.output


def test_contact_unknown_tag(cli_runner, temp_db):
    result = run(cli_runner, temp_db, "contact", "create", "Azure", "--email", "azure@example.com", "--tag", "gold")
    assert result.exit_code == 1
    assert "not found" in result.output


def test_contact_archive(cli_runner, temp_db, contact_service):
    contact_id = contact_service.create_contact(name="Gemini Furniture", email="gemini@example.com")
    result = run(cli_runner, temp_db, "contact", "archive", "Gemini Furniture")
    assert result.exit_code == 0
    assert f"Contact {contact_id} is now archived" in result.output


def test_rule_create_confirm_and_test(cli_runner, temp_db, master_data):
    result = run(
        cli_runner,
        temp_db,
        "rule",
        "create",
        "VIP furniture",
        "--analytic",
        "Marriage Session 2026",
        "--tag",
        "vip",
        "--category",
        "Furniture",
    )
    assert result.exit_code == 0
    assert "Created rule 'VIP furniture' (ID: 1)" in result.output

    result = run(cli_runner, temp_db, "rule", "test", "--partner", "Azure Interior", "--product", "Chair")
    assert "No rule matches" in result.output

    assert run(cli_runner, temp_db, "rule", "confirm", "1").exit_code == 0

    result = run(cli_runner, temp_db, "rule", "test", "--partner", "Azure Interior", "--product", "Chair")
    assert result.exit_code == 0
    assert "1 matching rule(s)" in result.output
    assert "Rule 'VIP furniture' matched on partner_tag, product_category" in result.output


def test_rule_update_confirmed_fails(cli_runner, temp_db, rule_service, master_data):
    rule_id = rule_service.create_rule(
        name="Azure chairs", analytic_id=master_data["marriage"], partner_id=master_data["azure"],
        product_id=master_data["chair"],
    )
    rule_service.confirm_rule(rule_id)
    result = run(cli_runner, temp_db, "rule", "update", str(rule_id), "--name", "Renamed")
    assert result.exit_code == 1
    assert "Cannot edit rule" in result.output


def test_recommend_json(cli_runner, temp_db, rule_service, master_data):
    rule_id = rule_service.create_rule(
        name="VIP furniture",
        analytic_id=master_data["marriage"],
        partner_tag_id=master_data["vip"],
        product_category_id=master_data["furniture"],
    )
    rule_service.confirm_rule(rule_id)

    result = cli_runner.invoke(
        cli,
        [
            "--db-path",
            temp_db.database_path,
            "--json",
            "recommend",
            "--partner",
            "Azure Interior",
            "--product",
            "Chair",
            "--kind",
            "bill",
        ],
    )
    assert result.exit_code == 0
    payload = json.loads(result.output)
    assert payload["success"] is True
    assert payload["data"]["analyticsName"] == "Marriage Session 2026"
    assert payload["data"]["source"] == "Rule"
    assert payload["data"]["confidence"] == 1.0


def test_recommend_text_without_match(cli_runner, temp_db, master_data):
    result = run(cli_runner, temp_db, "recommend", "--partner", "Gemini Furniture", "--product", "Lamp")
    assert result.exit_code == 0
    assert "Analytic: none" in result.output
    assert "Source:     None" in result.output


def test_category_update_and_delete(cli_runner, temp_db, master_data):
    result = run(cli_runner, temp_db, "category", "update", "Decor", "--name", "Home Decor")
    assert result.exit_code == 0
    assert "Updated product category 'Home Decor'" in result.output

    result = run(cli_runner, temp_db, "category", "delete", "Home Decor")
    assert result.exit_code == 1
    assert "1 product" in result.output

    run(cli_runner, temp_db, "category", "create", "Garden")
    result = run(cli_runner, temp_db, "category", "delete", "Garden")
    assert result.exit_code == 0
    assert "Deleted product category" in result.output


def test_tag_update_and_delete(cli_runner, temp_db, master_data):
    result = run(cli_runner, temp_db, "tag", "update", "vip", "--display-name", "V.I.P.")
    assert result.exit_code == 0
    assert "Updated partner tag 'vip'" in result.output

    result = run(cli_runner, temp_db, "tag", "delete", "vip")
    assert result.exit_code == 1
    assert "1 contact" in result.output


def test_contact_delete(cli_runner, temp_db, master_data, make_document):
    result = run(cli_runner, temp_db, "contact", "delete", "Deco Addict", "--yes")
    assert result.exit_code == 0
    assert "Deleted contact 'Deco Addict'" in result.output

    make_document(master_data["gemini"], "100", confirm=False)
    result = run(cli_runner, temp_db, "contact", "delete", "Gemini Furniture", "--yes")
    assert result.exit_code == 1
    assert "1 document" in result.output


def test_product_delete_asks_first(cli_runner, temp_db, master_data):
    lamp = str(master_data["lamp"])
    result = cli_runner.invoke(cli, ["--db-path", temp_db.database_path, "product", "delete", lamp], input="n\n")
    assert "Deletion cancelled." in result.output

    result = run(cli_runner, temp_db, "product", "delete", lamp, "--yes")
    assert result.exit_code == 0
    assert f"Deleted product {lamp}" in result.output
