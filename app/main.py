"""
Streamlit Frontend for Dead Simple Budget

The screen the user keeps open while budgeting: envelopes, credit
cards, the transaction history and the summary panel.

DESIGN PRINCIPLES:
1. Simple, clear interface
2. Explicit confirmation for anything that moves money in bulk
3. Clear error messages in simple language
4. Visual feedback for all operations
5. No hidden actions

Confirmation works through a checkbox next to each consequential
button: the checkbox value is the answer the controller gets when it
asks for confirmation.
"""

import logging
from decimal import Decimal

import streamlit as st
from pydantic import ValidationError

from budget.config import get_settings, validate_all_settings
from budget.ledger import LedgerError
from budget.models.ledger import EnvelopePatch, TransactionPatch
from budget.money import to_display
from budget.orchestrator import BudgetController, create_app_components
from budget.services.confirmation import StaticConfirmation
from budget.services.storage import StorageError


logging.basicConfig(level=get_settings().app.log_level, format="%(message)s")


# Page configuration
st.set_page_config(
    page_title="Dead Simple Budget",
    page_icon="💰",
    layout="wide",
    initial_sidebar_state="expanded",
)

# Custom CSS for better UX
st.markdown("""
<style>
    .stButton>button {
        width: 100%;
        margin-top: 10px;
    }
    .warning-box {
        padding: 20px;
        background-color: #fff3cd;
        border-radius: 10px;
        border-left: 5px solid #ffc107;
        margin: 10px 0;
    }
</style>
""", unsafe_allow_html=True)


@st.cache_resource
def get_controller() -> BudgetController:
    """Get or create the budget controller (cached)."""
    try:
        return create_app_components(use_storage=True)
    except StorageError as e:
        st.error(f"Failed to open saved budget: {e}")
        return create_app_components(use_storage=False)


def money(cents: int) -> str:
    return f"{get_settings().ledger.currency_symbol}{to_display(cents)}"


def confirm_with(controller: BudgetController, checked: bool) -> None:
    """Answer the next confirmation prompt with the checkbox value."""
    controller.set_confirmation(StaticConfirmation(answer=checked))


def run_action(action, success_message: str):
    """Run a controller call and show the outcome."""
    try:
        result = action()
    except LedgerError as e:
        st.error(e.detail)
        return None
    except StorageError as e:
        st.error(f"Storage error: {e}")
        return None
    except ValidationError as e:
        st.error(f"Invalid input: {e.errors()[0]['msg']}")
        return None

    if result is False or result is None:
        st.warning("Nothing changed. Tick the confirmation box to proceed.")
    else:
        st.success(success_message)
    return result


def main():
    """Main application entry point."""
    controller = get_controller()

    # Sidebar navigation
    st.sidebar.title("💰 Dead Simple Budget")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["📊 Summary", "✉️ Envelopes", "💳 Credit Cards", "📜 Transactions", "💾 Backup", "⚙️ Settings"],
        index=0,
    )

    if controller.has_unsaved_changes:
        st.sidebar.error(f"⚠️ Unsaved changes: {controller.last_save_error}")

    st.sidebar.markdown("---")
    st.sidebar.markdown(
        """
        **How to use:**
        1. Add income into the Income envelope
        2. Give each envelope a target
        3. Auto-allocate to fill them
        4. Record spending as it happens
        """
    )

    # Route to appropriate page
    if page == "📊 Summary":
        render_summary_page(controller)
    elif page == "✉️ Envelopes":
        render_envelopes_page(controller)
    elif page == "💳 Credit Cards":
        render_cards_page(controller)
    elif page == "📜 Transactions":
        render_transactions_page(controller)
    elif page == "💾 Backup":
        render_backup_page(controller)
    elif page == "⚙️ Settings":
        render_settings_page(controller)


def render_summary_page(controller: BudgetController):
    """Render the summary panel, income entry and auto-allocation."""
    st.title("📊 Summary")

    summary = controller.queries.summary()

    col1, col2, col3 = st.columns(3)
    col1.metric("Envelopes", money(summary.envelopes_cents))
    col2.metric("Credit cards", money(summary.cards_cents))
    col3.metric("Net after cards", money(summary.net_after_cards_cents))

    col1, col2, col3 = st.columns(3)
    col1.metric("Bank", money(summary.bank_cents))
    col2.metric("Bank - envelopes", money(summary.difference_cents))
    col3.metric("Per-period targets", money(summary.allocations_cents))

    st.markdown("---")
    st.subheader("🏦 Bank Balance")
    bank = st.number_input(
        "Bank account balance",
        value=float(summary.bank_cents) / 100,
        step=0.01,
        format="%.2f",
        help="Reference only: compare it against the envelope total",
    )
    if st.button("Update Bank Balance"):
        run_action(
            lambda: controller.set_bank_balance(Decimal(str(bank))),
            "Bank balance updated.",
        )
        st.rerun()

    st.markdown("---")
    st.subheader("💵 Add Income")
    col1, col2 = st.columns(2)
    with col1:
        income_amount = st.number_input("Amount", min_value=0.0, step=0.01, format="%.2f")
    with col2:
        income_note = st.text_input("Note", value="Income")
    if st.button("➕ Add Income", type="primary"):
        run_action(
            lambda: controller.add_income(Decimal(str(income_amount)), income_note),
            "Income added.",
        )

    st.markdown("---")
    st.subheader("🔁 Auto-Allocate")
    st.markdown(f"""
    <div class="warning-box">
        <p>Moves every envelope's target ({money(summary.allocations_cents)} in total)
        out of Income. Income ({money(summary.income_cents)}) may go below zero.
        Allocations do not appear in the history.</p>
    </div>
    """, unsafe_allow_html=True)
    allocate_ok = st.checkbox("I understand, allocate now")
    if st.button("Auto-Allocate"):
        confirm_with(controller, allocate_ok)
        run_action(controller.auto_allocate, "Targets allocated from Income.")


def render_envelopes_page(controller: BudgetController):
    """Render the envelope list with create, edit and delete."""
    st.title("✉️ Envelopes")

    with st.expander("➕ New Envelope", expanded=False):
        name = st.text_input("Name", key="new_env_name")
        target = st.number_input("Target per period", min_value=0.0, step=0.01, format="%.2f", key="new_env_target")
        if st.button("Create Envelope", type="primary"):
            run_action(
                lambda: controller.create_envelope(name, Decimal(str(target))),
                f'Envelope "{name}" created.',
            )

    st.markdown("---")

    envelopes = [
        e for e in controller.registry.active_envelopes() if not e.is_credit_card
    ]
    for envelope in envelopes:
        label = f"{envelope.name} | {money(envelope.balance_cents)}"
        if envelope.target_cents:
            label += f" (target {money(envelope.target_cents)})"
        if envelope.is_core:
            label += " 🔒"

        with st.expander(label):
            if envelope.is_core:
                st.info("Income and Overflow are core envelopes and cannot be renamed or deleted.")
                continue

            new_name = st.text_input("Name", value=envelope.name, key=f"name_{envelope.id}")
            new_target = st.number_input(
                "Target",
                value=float(envelope.target_cents) / 100,
                min_value=0.0,
                step=0.01,
                format="%.2f",
                key=f"target_{envelope.id}",
            )
            if st.button("Save", key=f"save_{envelope.id}"):
                run_action(
                    lambda: controller.update_envelope(
                        envelope.id,
                        EnvelopePatch(name=new_name, target=Decimal(str(new_target))),
                    ),
                    "Envelope updated.",
                )

            if envelope.balance_cents:
                st.caption(
                    f"Deleting moves {money(envelope.balance_cents)} back to Income."
                )
            delete_ok = st.checkbox("Merge balance into Income", key=f"del_ok_{envelope.id}")
            if st.button("🗑️ Delete", key=f"delete_{envelope.id}"):
                confirm_with(controller, delete_ok)
                run_action(lambda: controller.delete_envelope(envelope.id), "Envelope deleted.")


def render_cards_page(controller: BudgetController):
    """Render credit card envelopes."""
    st.title("💳 Credit Cards")

    with st.expander("➕ New Credit Card"):
        name = st.text_input("Card name", key="new_card_name")
        if st.button("Create Card", type="primary"):
            run_action(lambda: controller.create_credit_card(name), f'Card "{name}" created.')

    st.markdown("---")

    cards = [e for e in controller.registry.active_envelopes() if e.is_credit_card]
    if not cards:
        st.info("No credit cards yet.")

    for card in cards:
        with st.expander(f"{card.name} | {money(card.balance_cents)}"):
            delete_ok = st.checkbox("Yes, delete this card", key=f"card_ok_{card.id}")
            if st.button("🗑️ Delete", key=f"card_delete_{card.id}"):
                confirm_with(controller, delete_ok)
                run_action(lambda: controller.delete_credit_card(card.id), "Card deleted.")


def render_transactions_page(controller: BudgetController):
    """Render the transaction form and the history list."""
    st.title("📜 Transactions")

    choices = controller.queries.envelope_choices()
    options = [None] + [c.envelope_id for c in choices]
    labels = {c.envelope_id: c.label for c in choices}

    col1, col2 = st.columns(2)
    with col1:
        from_id = st.selectbox(
            "From",
            options=options,
            format_func=lambda x: "(outside: money coming in)" if x is None else labels[x],
        )
        amount = st.number_input("Amount", min_value=0.0, step=0.01, format="%.2f")
    with col2:
        to_id = st.selectbox(
            "To",
            options=options,
            format_func=lambda x: "(outside: money spent)" if x is None else labels[x],
        )
        note = st.text_input("Note")

    if st.button("✅ Add Transaction", type="primary"):
        run_action(
            lambda: controller.add_transaction(from_id, to_id, Decimal(str(amount)), note),
            "Transaction added.",
        )

    st.markdown("---")
    st.subheader("History")
    retention = controller.state.settings.transaction_retention_days
    st.caption(f"Transactions older than {retention} days are removed automatically.")

    for entry in controller.queries.history():
        col1, col2, col3, col4 = st.columns([3, 4, 2, 1])
        col1.write(entry.timestamp.strftime("%Y-%m-%d %H:%M"))
        col2.write(f"{entry.from_name} → {entry.to_name}" + (f" · {entry.note}" if entry.note else ""))
        col3.write(money(entry.amount_cents))
        if col4.button("🗑️", key=f"tx_delete_{entry.transaction_id}"):
            run_action(
                lambda: controller.delete_transaction(entry.transaction_id),
                "Transaction deleted.",
            )
            st.rerun()

        with st.expander("Edit", expanded=False):
            new_amount = st.number_input(
                "Amount",
                value=float(entry.amount_cents) / 100,
                min_value=0.0,
                step=0.01,
                format="%.2f",
                key=f"tx_amount_{entry.transaction_id}",
            )
            new_note = st.text_input("Note", value=entry.note, key=f"tx_note_{entry.transaction_id}")
            if st.button("Save", key=f"tx_save_{entry.transaction_id}"):
                run_action(
                    lambda: controller.update_transaction(
                        entry.transaction_id,
                        TransactionPatch(amount=Decimal(str(new_amount)), note=new_note),
                    ),
                    "Transaction updated.",
                )


def render_backup_page(controller: BudgetController):
    """Render export and import."""
    st.title("💾 Backup")

    st.markdown("### Export")
    try:
        blob = controller.export_state()
    except StorageError as e:
        st.error(str(e))
    else:
        st.download_button(
            "⬇️ Download backup",
            data=blob,
            file_name="budget-backup.json",
            mime="application/json",
        )

    st.markdown("---")
    st.markdown("### Import")
    uploaded = st.file_uploader("Choose a backup file", type=["json"])
    import_ok = st.checkbox("Overwrite my current budget data")
    if uploaded and st.button("⬆️ Import", type="primary"):
        confirm_with(controller, import_ok)
        run_action(
            lambda: controller.import_state(uploaded.getvalue()),
            "Backup imported.",
        )


def render_settings_page(controller: BudgetController):
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Configuration Status")

    status = validate_all_settings()

    for name, key in [("Storage", "storage"), ("Ledger", "ledger"), ("Application", "app")]:
        if status.get(key, False):
            st.success(f"✅ {name} - OK")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    st.markdown("---")
    st.markdown("### Maintenance")
    col1, col2 = st.columns(2)
    with col1:
        if st.button("Prune old transactions"):
            removed = controller.prune_old_transactions()
            st.info(f"Removed {removed} transaction(s).")
    with col2:
        if st.button("Remove unused envelopes"):
            purged = controller.cleanup_unused_envelopes()
            st.info(f"Removed {len(purged)} envelope(s).")

    st.markdown("---")
    st.markdown(
        "Settings are read from environment variables or a `.env` file "
        "(`BUDGET_STORAGE_DATA_DIR`, `BUDGET_LEDGER_CURRENCY_SYMBOL`, ...)."
    )


if __name__ == "__main__":
    main()
