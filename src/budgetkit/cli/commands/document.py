"""Purchase order, sales order, vendor bill and customer invoice commands.

The four document kinds share one state machine, so their command groups
are built by the same factory.
"""

from decimal import Decimal, InvalidOperation

import click
from budgetkit.cli.commands.analytic import resolve_analytic_id
from budgetkit.cli.contact_resolution import resolve_contact_or_exit
from budgetkit.cli.error_handling import emit, handle_domain_error
from budgetkit.cli.services import build_document_service
from budgetkit.domain.analytic import AnalyticService
from budgetkit.domain.contact import ContactService
from budgetkit.domain.entities import (
    DocumentKind,
    DocumentStatus,
    FinancialDocument,
    LineDraft,
    PaymentMethod,
    PaymentStatus,
)
from budgetkit.domain.errors import ValidationError
from budgetkit.domain.product import ProductService
from budgetkit.utils.amount_parser import parse_amount
from budgetkit.utils.date_parser import parse_date


def parse_line(db, value: str) -> LineDraft:
    """Parse PRODUCT:QTY:PRICE[:ANALYTIC] into a line draft.

    PRODUCT is a product ID or name; an unknown name becomes a free-text line.
    """
    parts = value.split(":")
    if len(parts) not in (3, 4):
        raise ValidationError(f"Invalid line '{value}', expected PRODUCT:QTY:PRICE[:ANALYTIC]")
    product, quantity, price = (p.strip() for p in parts[:3])

    product_id = None
    product_name = product
    products = ProductService(db)
    if product.isdigit():
        product_id = products.require_product(int(product)).id
        product_name = ""
    else:
        for candidate in products.list_products(search=product):
            if candidate.name.lower() == product.lower():
                product_id = candidate.id
                product_name = candidate.name
                break

    try:
        qty = Decimal(quantity)
    except InvalidOperation:
        raise ValidationError(f"Invalid quantity '{quantity}' in line '{value}'")

    analytic_id = None
    if len(parts) == 4 and parts[3].strip():
        analytic_id = resolve_analytic_id(AnalyticService(db), parts[3].strip())

    return LineDraft(
        product_name=product_name,
        quantity=qty,
        unit_price=parse_amount(price),
        product_id=product_id,
        analytic_id=analytic_id,
    )


def format_document(doc: FinancialDocument) -> str:
    return (
        f"ID: {doc.id:3d} | {doc.document_no:16s} | {doc.document_date} | "
        f"{doc.status.value:9s} | {doc.payment_status.value:8s} | "
        f"Total: {doc.grand_total:>12} | Due: {doc.amount_due:>12}"
    )


def document_detail_lines(doc: FinancialDocument, analytic_names: dict[int, str]) -> list[str]:
    lines = [
        f"Date:     {doc.document_date}   Due: {doc.due_date or '-'}",
        f"Partner:  {doc.partner_id or '-'}",
        f"Status:   {doc.status.value} / {doc.payment_status.value}",
    ]
    if doc.reference:
        lines.append(f"Ref:      {doc.reference}")
    if doc.source_document_id is not None:
        lines.append(f"Source:   document {doc.source_document_id}")
    if doc.sent_at is not None:
        lines.append(f"Sent:     {doc.sent_at:%Y-%m-%d %H:%M}")
    lines.append("-" * 100)
    for line in doc.lines:
        analytic = analytic_names.get(line.analytic_id, "-") if line.analytic_id else "-"
        flags = []
        if line.auto_assigned:
            flags.append("auto")
        if line.exceeds_budget:
            flags.append("EXCEEDS BUDGET")
        flag_text = f" [{', '.join(flags)}]" if flags else ""
        lines.append(
            f"{line.position + 1:2d}. {line.product_name:25s} {line.quantity:>8} x {line.unit_price:>10} "
            f"= {line.line_total:>12} | {analytic}{flag_text}"
        )
    lines.append("-" * 100)
    lines.append(f"Total: {doc.grand_total}   Paid: {doc.paid_amount}   Due: {doc.amount_due}")
    return lines


def make_document_group(kind: DocumentKind, help_text: str) -> click.Group:
    """Build the command group for one document kind."""
    role = kind.partner_role

    @click.group(help=help_text)
    def group():
        pass

    def load(ctx, document_id: int) -> FinancialDocument:
        try:
            return build_document_service(ctx).require_document(document_id, kind)
        except ValueError as e:
            handle_domain_error(ctx, e)

    @group.command("create")
    @click.option("--partner", help=f"The {role} (contact name or ID)")
    @click.option("--date", "document_date", help="Document date (default: today)")
    @click.option("--due", "due_date", help="Due date (default: date + 30 days)")
    @click.option("--reference", help="External reference")
    @click.option("--notes", help="Notes")
    @click.option("--line", "lines", multiple=True, help="PRODUCT:QTY:PRICE[:ANALYTIC] (repeatable)")
    @click.option("--no-auto-assign", is_flag=True, help="Do not fill analytics from recommendations")
    @click.pass_context
    def create(ctx, partner, document_date, due_date, reference, notes, lines, no_auto_assign):
        """Create a draft document."""
        db = ctx.obj["db"]
        service = build_document_service(ctx)
        partner_id = resolve_contact_or_exit(ctx, ContactService(db), partner) if partner else None
        try:
            document_id = service.create_draft(
                kind,
                partner_id=partner_id,
                lines=[parse_line(db, value) for value in lines],
                document_date=parse_date(document_date) if document_date else None,
                due_date=parse_date(due_date) if due_date else None,
                reference=reference,
                notes=notes,
                auto_assign=not no_auto_assign,
            )
            doc = service.get_document(document_id)
            emit(ctx, doc, f"Created {kind.label} {doc.document_no} (ID: {document_id})")
        except ValueError as e:
            handle_domain_error(ctx, e)

    @group.command("list")
    @click.option("--status", type=click.Choice([s.value for s in DocumentStatus]), help="Filter by status")
    @click.option("--payment-status", type=click.Choice([s.value for s in PaymentStatus]), help="Filter by payment status")
    @click.option("--partner", help=f"Filter by {role}")
    @click.option("--search", help="Document number or reference contains")
    @click.pass_context
    def list_cmd(ctx, status, payment_status, partner, search):
        """List documents, newest first."""
        service = build_document_service(ctx)
        partner_id = resolve_contact_or_exit(ctx, ContactService(ctx.obj["db"]), partner) if partner else None
        documents = service.list_documents(
            kind=kind, status=status, payment_status=payment_status, partner_id=partner_id, search=search
        )
        if not documents:
            emit(ctx, [], f"No {kind.label.lower()}s found.")
            return
        emit(ctx, documents, f"\n{kind.label}s:", ["-" * 110] + [format_document(d) for d in documents])

    @group.command("show")
    @click.argument("document_id", type=int)
    @click.pass_context
    def show(ctx, document_id: int):
        """Show a document with its lines."""
        doc = load(ctx, document_id)
        names = {a.id: a.name for a in AnalyticService(ctx.obj["db"]).list_analytics()}
        emit(ctx, doc, f"{kind.label} {doc.document_no}", document_detail_lines(doc, names))

    @group.command("update")
    @click.argument("document_id", type=int)
    @click.option("--partner", help=f"New {role} (contact name or ID)")
    @click.option("--date", "document_date", help="New document date")
    @click.option("--due", "due_date", help="New due date")
    @click.option("--reference", help="New reference")
    @click.option("--notes", help="New notes")
    @click.option("--line", "lines", multiple=True, help="Replace all lines (repeatable)")
    @click.option("--no-auto-assign", is_flag=True, help="Do not fill analytics from recommendations")
    @click.pass_context
    def update(ctx, document_id: int, partner, document_date, due_date, reference, notes, lines, no_auto_assign):
        """Save changes to a draft document."""
        db = ctx.obj["db"]
        load(ctx, document_id)
        service = build_document_service(ctx)
        changes = {}
        if partner:
            changes["partner_id"] = resolve_contact_or_exit(ctx, ContactService(db), partner)
        try:
            doc = service.update_draft(
                document_id,
                lines=[parse_line(db, value) for value in lines] if lines else None,
                document_date=parse_date(document_date) if document_date else None,
                due_date=parse_date(due_date) if due_date else None,
                reference=reference,
                notes=notes,
                auto_assign=not no_auto_assign,
                **changes,
            )
            emit(ctx, doc, f"Updated {kind.label} {doc.document_no}")
        except ValueError as e:
            handle_domain_error(ctx, e)

    def transition(name: str, action: str, done: str, help_line: str):
        @group.command(name, help=help_line)
        @click.argument("document_id", type=int)
        @click.pass_context
        def command(ctx, document_id: int):
            load(ctx, document_id)
            service = build_document_service(ctx)
            try:
                doc = getattr(service, action)(document_id)
                emit(ctx, doc, f"{kind.label} {doc.document_no} {done}")
            except ValueError as e:
                handle_domain_error(ctx, e)

        return command

    transition("confirm", "confirm", "confirmed", "Confirm a draft; achieved budget amounts are updated.")
    transition("cancel", "cancel", "cancelled", "Cancel a document; confirmed amounts are reversed.")
    transition("send", "mark_sent", "marked as sent", "Mark a confirmed document as sent.")

    @group.command("pay")
    @click.argument("document_id", type=int)
    @click.argument("amount")
    @click.option("--method", type=click.Choice([m.value for m in PaymentMethod]), default="bank", help="Payment method (default: bank)")
    @click.option("--date", "paid_on", help="Payment date (default: today)")
    @click.option("--reference", help="Payment reference")
    @click.option("--notes", help="Notes")
    @click.pass_context
    def pay(ctx, document_id: int, amount: str, method: str, paid_on, reference, notes):
        """Record a payment against a confirmed document."""
        load(ctx, document_id)
        service = build_document_service(ctx)
        try:
            paid = parse_amount(amount)
            doc = service.record_payment(
                document_id,
                paid,
                method=method,
                paid_on=parse_date(paid_on) if paid_on else None,
                reference=reference,
                notes=notes,
            )
            emit(
                ctx,
                doc,
                f"Recorded {method} payment of {paid} on {doc.document_no}",
                [f"Paid: {doc.paid_amount}   Due: {doc.amount_due}   Status: {doc.payment_status.value}"],
            )
        except ValueError as e:
            handle_domain_error(ctx, e)

    @group.command("payments")
    @click.argument("document_id", type=int)
    @click.pass_context
    def payments(ctx, document_id: int):
        """List payments recorded against a document."""
        doc = load(ctx, document_id)
        rows = build_document_service(ctx).list_payments(document_id)
        if not rows:
            emit(ctx, [], f"No payments on {doc.document_no}.")
            return
        lines = [f"{p.paid_on} | {p.method.value:4s} | {p.amount:>12} | {p.reference or ''}" for p in rows]
        emit(ctx, rows, f"Payments on {doc.document_no}:", lines)

    @group.command("delete")
    @click.argument("document_id", type=int)
    @click.pass_context
    def delete(ctx, document_id: int):
        """Permanently delete a draft document."""
        doc = load(ctx, document_id)
        try:
            build_document_service(ctx).delete_draft(document_id)
            emit(ctx, {"id": document_id}, f"Deleted {kind.label} {doc.document_no}")
        except ValueError as e:
            handle_domain_error(ctx, e)

    if kind.invoiced_as is not None:
        target = kind.invoiced_as
        make_followup = (
            "create_bill_from_purchase_order"
            if kind == DocumentKind.PURCHASE_ORDER
            else "create_invoice_from_sales_order"
        )
        command_name = "bill" if target == DocumentKind.VENDOR_BILL else "invoice"

        @group.command(command_name, help=f"Create a draft {target.label.lower()} from a confirmed {kind.label.lower()}.")
        @click.argument("document_id", type=int)
        @click.option("--date", "on", help=f"{target.label} date (default: today)")
        @click.pass_context
        def create_followup(ctx, document_id: int, on):
            load(ctx, document_id)
            service = build_document_service(ctx)
            try:
                new_id = getattr(service, make_followup)(document_id, parse_date(on) if on else None)
                created = service.get_document(new_id)
                emit(ctx, created, f"Created {target.label.lower()} {created.document_no} (ID: {new_id})")
            except ValueError as e:
                handle_domain_error(ctx, e)

    return group


po_group = make_document_group(DocumentKind.PURCHASE_ORDER, "Manage purchase orders.")
so_group = make_document_group(DocumentKind.SALES_ORDER, "Manage sales orders.")
bill_group = make_document_group(DocumentKind.VENDOR_BILL, "Manage vendor bills.")
invoice_group = make_document_group(DocumentKind.CUSTOMER_INVOICE, "Manage customer invoices.")


def register_commands(cli):
    """Register document commands with main CLI."""
    cli.add_command(po_group, name="po")
    cli.add_command(so_group, name="so")
    cli.add_command(bill_group, name="bill")
    cli.add_command(invoice_group, name="invoice")
