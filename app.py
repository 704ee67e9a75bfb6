"""
app.py
Streamlit Subscription Manager (shared household subscriptions, owner-only).
Run: streamlit run app.py
"""

from __future__ import annotations

from datetime import date
import pandas as pd
import streamlit as st

import config
import utils
from errors import SubscriptionError
from models import CYCLE_MONTHS, STATUS_LABELS, STATUSES
from repository import SQLiteRepository
from services import SubscriptionService

st.set_page_config(page_title="Subscription Manager", layout="wide")


def init_once() -> SubscriptionService:
    config.setup_logging()
    return SubscriptionService(SQLiteRepository(config.DB_FILE))


def baht(value: float) -> str:
    return f"฿{value:,.0f}"


def house_options(svc: SubscriptionService) -> dict[str, str]:
    return {h.name: h.id for h in svc.list_houses()}


def product_options(svc: SubscriptionService) -> dict[str, str | None]:
    options: dict[str, str | None] = {"(none)": None}
    options.update({f"{p.icon} {p.name}": p.id for p in svc.list_products()})
    return options


def members_frame(svc: SubscriptionService, members) -> pd.DataFrame:
    houses = {h.id: h.name for h in svc.list_houses()}
    rows = [
        {
            "id": m.id,
            "name": m.name,
            "house": houses.get(m.house_id, ""),
            "email": m.email,
            "phone": m.phone,
            "fee": m.monthly_fee,
            "cycle": utils.cycle_label(m.billing_cycle),
            "payment_date": m.payment_date,
            "expiration_date": m.expiration_date,
            "status": STATUS_LABELS[svc.member_status(m)],
        }
        for m in members
    ]
    return pd.DataFrame(rows, columns=[
        "id", "name", "house", "email", "phone", "fee", "cycle", "payment_date", "expiration_date", "status"
    ])


def dashboard_page(svc: SubscriptionService):
    st.header("📊 Dashboard")

    s = svc.stats()
    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Houses", s.total_houses)
    c2.metric("Members", s.total_members)
    c3.metric("Expected monthly fees", baht(s.total_monthly_fee))
    c4.metric("Products", s.total_products)

    c5, c6, c7, c8 = st.columns(4)
    c5.metric("Active", s.active_members)
    c6.metric("Expiring in 7 days", s.expiring_members)
    c7.metric("Expired", s.expired_members)
    c8.metric("Avg paid / month", baht(s.avg_monthly_paid), help=f"All-time paid: {baht(s.total_paid)}")

    st.divider()

    houses = {h.id: h.name for h in svc.list_houses()}

    st.subheader("Expiring soon (next 7 days)")
    rows = svc.expiring_soon()
    if rows:
        st.dataframe(pd.DataFrame([
            {"name": m.name, "house": houses.get(m.house_id, ""), "expiration_date": m.expiration_date,
             "days_left": days, "fee": m.monthly_fee}
            for m, days in rows
        ]), use_container_width=True, hide_index=True)
    else:
        st.caption("No members expiring in the next 7 days.")

    st.subheader("Upcoming payments (next 14 days)")
    rows = svc.upcoming_payments(14)
    if rows:
        st.dataframe(pd.DataFrame([
            {"name": m.name, "house": houses.get(m.house_id, ""), "payment_date": m.payment_date,
             "days_until": days, "fee": m.monthly_fee}
            for m, days in rows[:10]
        ]), use_container_width=True, hide_index=True)
    else:
        st.caption("No payments due in the next 14 days.")

    st.subheader("Expired")
    rows = svc.expired()
    if rows:
        st.dataframe(pd.DataFrame([
            {"name": m.name, "house": houses.get(m.house_id, ""), "expiration_date": m.expiration_date,
             "days_overdue": days, "fee": m.monthly_fee}
            for m, days in rows
        ]), use_container_width=True, hide_index=True)
    else:
        st.caption("No expired members.")


def houses_page(svc: SubscriptionService):
    st.header("🏠 Houses")

    products = {p.id: p for p in svc.list_products()}
    search = st.text_input("Search houses", placeholder="name or description")
    summaries = svc.house_summaries(search)
    if summaries:
        st.dataframe(pd.DataFrame([
            {
                "id": h.id,
                "name": h.name,
                "product": (f"{products[h.product_id].icon} {products[h.product_id].name}"
                            if h.product_id in products else ""),
                "members": s["total"],
                "active": s["active"],
                "expiring": s["expiring"],
                "expired": s["expired"],
                "total_fee": s["total_fee"],
            }
            for h, s in summaries
        ]), use_container_width=True, hide_index=True)
    else:
        st.caption("No houses yet.")

    st.divider()

    options = {f"{h.name} ({h.id[:8]})": h for h, _ in summaries}
    selected = st.selectbox("House", ["(new house)"] + list(options.keys()))
    existing = options.get(selected)

    prod_opts = product_options(svc)
    prod_labels = list(prod_opts.keys())
    prod_index = 0
    if existing and existing.product_id in prod_opts.values():
        prod_index = list(prod_opts.values()).index(existing.product_id)

    name = st.text_input("Name", value=existing.name if existing else "")
    description = st.text_input("Description", value=existing.description if existing else "")
    product_label = st.selectbox("Product", prod_labels, index=prod_index)

    c1, c2 = st.columns(2)
    with c1:
        if st.button("Save", type="primary"):
            try:
                if existing:
                    svc.update_house(existing.id, name, description, prod_opts[product_label])
                    st.success("House updated.")
                else:
                    svc.create_house(name, description, prod_opts[product_label])
                    st.success("House added.")
                st.rerun()
            except SubscriptionError as e:
                st.error(str(e))
    with c2:
        if existing:
            confirm = st.checkbox("Confirm delete (removes its members and payments)", value=False)
            if st.button("Delete", disabled=not confirm):
                svc.delete_house(existing.id)
                st.success("House deleted.")
                st.rerun()


def products_page(svc: SubscriptionService):
    st.header("📦 Products")

    products = svc.list_products()
    if products:
        st.dataframe(pd.DataFrame([
            {"id": p.id, "icon": p.icon, "name": p.name, "color": p.color,
             "houses": svc.house_count_for_product(p.id)}
            for p in products
        ]), use_container_width=True, hide_index=True)
    else:
        st.caption("No products yet.")

    st.divider()

    options = {f"{p.icon} {p.name}": p for p in products}
    selected = st.selectbox("Product", ["(new product)"] + list(options.keys()))
    existing = options.get(selected)

    name = st.text_input("Name", value=existing.name if existing else "")
    icon = st.text_input("Icon", value=existing.icon if existing else "📦")
    color = st.color_picker("Color", value=existing.color if existing else "#6366f1")

    c1, c2 = st.columns(2)
    with c1:
        if st.button("Save", type="primary"):
            try:
                if existing:
                    svc.update_product(existing.id, name, icon, color)
                    st.success("Product updated.")
                else:
                    svc.create_product(name, icon, color)
                    st.success("Product added.")
                st.rerun()
            except SubscriptionError as e:
                st.error(str(e))
    with c2:
        if existing:
            confirm = st.checkbox("Confirm delete", value=False)
            if st.button("Delete", disabled=not confirm):
                svc.delete_product(existing.id)
                st.success("Product deleted.")
                st.rerun()


def member_form(svc: SubscriptionService, existing=None):
    if existing:
        st.subheader(f"✏️ Edit Member ({existing.name})")
    else:
        st.subheader("➕ Add Member")

    houses = house_options(svc)
    if not houses:
        st.info("Add a house first.")
        return

    house_names = list(houses.keys())
    house_ids = list(houses.values())
    cycles = list(CYCLE_MONTHS.keys())

    col1, col2, col3 = st.columns(3)
    with col1:
        name = st.text_input("Name", value=existing.name if existing else "")
        email = st.text_input("Email", value=existing.email if existing else "")
        phone = st.text_input("Phone", value=existing.phone if existing else "")

    with col2:
        house_name = st.selectbox(
            "House", house_names,
            index=(house_ids.index(existing.house_id) if existing and existing.house_id in house_ids else 0),
        )
        fee = st.text_input("Monthly fee", value=str(existing.monthly_fee) if existing else "0")
        cycle = st.selectbox(
            "Billing cycle", cycles,
            index=(cycles.index(existing.billing_cycle) if existing else 0),
            format_func=utils.cycle_label,
        )

    with col3:
        today = svc.today()
        payment_date = st.date_input(
            "Payment date", value=utils.parse_iso(existing.payment_date) if existing else today
        )
        expiration_date = st.date_input(
            "Expiration date (auto-calculated, editable)",
            value=(utils.parse_iso(existing.expiration_date) if existing
                   else utils.next_expiration(payment_date, cycle)),
        )

    if st.button("Save", type="primary"):
        data = {
            "house_id": houses[house_name],
            "name": name,
            "email": email,
            "phone": phone,
            "monthly_fee": fee,
            "billing_cycle": cycle,
            "payment_date": payment_date,
            "expiration_date": expiration_date,
        }
        try:
            if existing:
                svc.update_member(existing.id, data)
                st.success("Member updated.")
            else:
                svc.create_member(data)
                st.success("Member added.")
            st.rerun()
        except SubscriptionError as e:
            st.error(str(e))


def members_page(svc: SubscriptionService):
    st.header("👥 Members")

    houses = house_options(svc)
    with st.sidebar:
        st.subheader("Search & Filters")
        search = st.text_input("Search (name/email/phone)")
        house_filter = st.selectbox("House", ["All"] + list(houses.keys()))
        status_filter = st.selectbox("Status", ["All"] + list(STATUSES),
                                     format_func=lambda s: STATUS_LABELS.get(s, s))

    members = svc.list_members(
        house_id=houses.get(house_filter),
        status=None if status_filter == "All" else status_filter,
        search=search,
    )
    df = members_frame(svc, members)
    st.dataframe(df, use_container_width=True, hide_index=True)

    st.divider()

    colA, colB = st.columns([1, 2])
    with colA:
        st.subheader("Select member")
        labels = {f"{m.name} ({m.id[:8]})": m.id for m in members}
        selected = st.selectbox("Member", ["(none)"] + list(labels.keys()))

    with colB:
        if selected != "(none)":
            member_id = labels[selected]
            st.subheader("Member actions")
            c1, c2, c3 = st.columns(3)
            with c1:
                if st.button("Edit"):
                    st.session_state.edit_member_id = member_id
                    st.rerun()
            with c2:
                if st.button("Record payment"):
                    st.session_state.payments_member_id = member_id
                    st.session_state.page = "Payments"
                    st.rerun()
            with c3:
                delete_confirm = st.checkbox("Confirm delete", value=False, key="del_confirm")
                if st.button("Delete", type="secondary", disabled=not delete_confirm):
                    svc.delete_member(member_id)
                    st.success("Member deleted.")
                    st.rerun()

    st.divider()

    if st.session_state.get("edit_member_id"):
        existing = svc.repo.get_member(st.session_state.edit_member_id)
        if existing:
            member_form(svc, existing=existing)
        if st.button("Cancel edit"):
            st.session_state.edit_member_id = None
            st.rerun()
    else:
        member_form(svc, existing=None)


def payments_page(svc: SubscriptionService):
    st.header("💳 Payments")

    members = svc.list_members()
    if not members:
        st.info("No members yet. Add a member first.")
        return

    options = {f"{m.name} ({m.phone or m.email}) - {m.id[:8]}": m.id for m in members}
    ids = list(options.values())
    default_id = st.session_state.get("payments_member_id")
    chosen_label = st.selectbox("Member", list(options.keys()),
                                index=ids.index(default_id) if default_id in ids else 0)
    member = svc.get_member(options[chosen_label])
    st.session_state.payments_member_id = member.id

    st.write(
        f"Cycle: **{utils.cycle_label(member.billing_cycle)}** | Fee: **{baht(member.monthly_fee)}** | "
        f"Expires: **{member.expiration_date}** | Status: **{STATUS_LABELS[svc.member_status(member)]}**"
    )

    st.subheader("Record payment")
    c1, c2 = st.columns(2)
    with c1:
        amount = st.text_input("Amount", value=str(member.monthly_fee))
    with c2:
        new_exp = st.date_input("New expiration date", value=svc.suggest_expiration(member.id))

    if st.button("Record payment", type="primary"):
        try:
            svc.record_payment(member.id, amount, new_exp)
            st.success("Payment recorded.")
            st.rerun()
        except SubscriptionError as e:
            st.error(str(e))

    st.divider()

    st.subheader("Payment history")
    history = svc.payment_history(member.id)
    if history:
        st.dataframe(pd.DataFrame([{"paid_at": p.paid_at, "amount": p.amount} for p in history]),
                     use_container_width=True, hide_index=True)
    else:
        st.caption("No payments for this member yet.")

    st.divider()

    st.subheader("All payments")
    ledger = svc.payment_ledger()
    if ledger:
        st.dataframe(pd.DataFrame(ledger).drop(columns=["id", "member_id"]),
                     use_container_width=True, hide_index=True)
    else:
        st.caption("No payments recorded yet.")

    st.divider()

    st.subheader("Revenue summary by month")
    st.dataframe(svc.revenue_by_month(), use_container_width=True, hide_index=True)


def import_export_page(svc: SubscriptionService):
    st.header("🧾 Import / Export")

    st.subheader("Export members to CSV")
    if svc.list_members():
        st.download_button(
            "Download members_export.csv",
            data=svc.export_members_csv().encode("utf-8"),
            file_name="members_export.csv",
            mime="text/csv",
        )
    else:
        st.caption("No members to export.")

    st.divider()

    st.subheader("Import members from CSV")
    houses = house_options(svc)
    if not houses:
        st.info("Add a house first.")
        return

    house_name = st.selectbox("Import into house", list(houses.keys()))
    upload = st.file_uploader("CSV file", type=["csv"])
    pasted = st.text_area("...or paste CSV text", height=150)

    if st.button("Import", type="primary"):
        text = upload.getvalue().decode("utf-8") if upload is not None else pasted
        try:
            result = svc.import_members_csv(text, houses[house_name])
        except SubscriptionError as e:
            st.error(str(e))
            return
        st.success(f"Imported {result.imported_count} member(s).")
        for n, reason in result.skipped:
            st.warning(f"Line {n} skipped: {reason}")


def settings_page(svc: SubscriptionService):
    st.header("⚙️ Settings")

    st.caption(f"Database: {config.DB_FILE}")

    if config.SAMPLE_DATA_ENABLED:
        st.subheader("Sample data")
        st.caption("Replaces all houses, members and payments with 5 houses and 10 members (products are kept).")
        confirm = st.checkbox("I understand existing data will be removed", value=False)
        if st.button("Load sample data", disabled=not confirm):
            svc.load_sample_data()
            st.success("Sample data loaded.")
            st.rerun()


def main_app(svc: SubscriptionService):
    st.sidebar.title("📺 Subscription Manager")
    st.sidebar.caption(f"Today: {date.today().isoformat()}")

    pages = ["Dashboard", "Houses", "Products", "Members", "Payments", "Import / Export", "Settings"]
    if "page" not in st.session_state:
        st.session_state.page = "Dashboard"
    st.session_state.page = st.sidebar.radio("Navigate", pages, index=pages.index(st.session_state.page))

    if st.session_state.page == "Dashboard":
        dashboard_page(svc)
    elif st.session_state.page == "Houses":
        houses_page(svc)
    elif st.session_state.page == "Products":
        products_page(svc)
    elif st.session_state.page == "Members":
        members_page(svc)
    elif st.session_state.page == "Payments":
        payments_page(svc)
    elif st.session_state.page == "Import / Export":
        import_export_page(svc)
    elif st.session_state.page == "Settings":
        settings_page(svc)


# --------- App entry ---------

def run():
    svc = init_once()
    main_app(svc)


if __name__ == "__main__":
    run()
