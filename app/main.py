"""
Streamlit Frontend for Kakeibo

The household expense book the family opens every day.

DESIGN PRINCIPLES:
1. Simple, clear interface
2. Every action ends in a visible success or error notice
3. Error messages in plain Japanese
4. No hidden actions: lists are re-fetched after every write

Pages:
- Home (connection diagnostics)
- Login
- Dashboard (entry form, list, this month's total)
- Categories & tags (CRUD and reordering)
- Monthly summary (charts)
- Search
- Profile
"""

import asyncio
from datetime import date

import streamlit as st

from kakeibo.audit import configure_logging
from kakeibo.config import get_settings
from kakeibo.models import Category, ExpenseFilter, Tag
from kakeibo.orchestrator import (
    ActionResult,
    AppComponents,
    create_app_components,
    create_store,
    run_diagnostics,
)


# Page configuration
st.set_page_config(
    page_title="家計簿",
    page_icon="📒",
    layout="wide",
    initial_sidebar_state="expanded",
)

st.markdown("""
<style>
    .stButton>button {
        width: 100%;
        margin-top: 10px;
    }
    .big-number {
        font-size: 2.5em;
        font-weight: bold;
        color: #2c3e50;
    }
</style>
""", unsafe_allow_html=True)


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_store():
    """One document store per server process (cached)."""
    configure_logging(get_settings().app.log_level)
    return create_store()


def get_components() -> AppComponents:
    """Per-browser-session components sharing the cached store."""
    if "components" not in st.session_state:
        st.session_state.components = create_app_components(store=get_store())
    return st.session_state.components


def notify(result: ActionResult, rerun: bool = False) -> None:
    """
    Show an action outcome.

    With rerun=True the notice is kept in the session and shown after
    the page re-fetches its lists.
    """
    if rerun:
        st.session_state.flash = result
        st.rerun()
    if result.success:
        if result.message:
            st.success(result.message)
    else:
        st.error(result.message)


def yen(amount) -> str:
    return f"¥{amount:,.0f}"


def _with_current(options: list[str], *current: str) -> list[str]:
    """Selectable options plus stored values that are no longer offered (renamed or deleted)."""
    extra = [value for value in current if value not in options]
    return list(options) + extra


def main():
    """Main application entry point."""
    components = get_components()
    session = components.session

    flash = st.session_state.pop("flash", None)
    if flash is not None:
        notify(flash)

    st.sidebar.title("📒 家計簿")
    st.sidebar.markdown("---")

    if not session.is_signed_in:
        page = st.sidebar.radio("メニュー", ["🏠 ホーム", "🔑 ログイン"], index=1)
    else:
        display_name = run_async(components.profile_flow.load_display_name())
        st.sidebar.markdown(f"**{display_name or session.user.uid}** さん")
        page = st.sidebar.radio(
            "メニュー",
            [
                "📝 ダッシュボード",
                "🗂 カテゴリー・タグ",
                "📊 月別集計",
                "🔍 支出検索",
                "👤 プロフィール",
                "🏠 ホーム",
            ],
            index=0,
        )
        if st.sidebar.button("ログアウト"):
            run_async(components.profile_flow.sign_out())
            st.rerun()

    if page == "🏠 ホーム":
        render_home_page(components)
    elif page == "🔑 ログイン":
        render_login_page(components)
    elif page == "📝 ダッシュボード":
        render_dashboard_page(components)
    elif page == "🗂 カテゴリー・タグ":
        render_taxonomy_page(components)
    elif page == "📊 月別集計":
        render_summary_page(components)
    elif page == "🔍 支出検索":
        render_search_page(components)
    elif page == "👤 プロフィール":
        render_profile_page(components)


def render_home_page(components: AppComponents):
    """Connection status."""
    st.title("🏠 ホーム")
    st.markdown("### 接続状況")

    checks = run_async(run_diagnostics(store=components.store))
    for check in checks:
        if check.passed:
            st.success(f"✅ {check.name} {check.detail}")
        else:
            st.error(f"❌ {check.name} - {check.detail or 'Not configured'}")

    st.markdown("---")
    st.markdown(
        "設定は `.env` ファイルで行います。"
        "必要な変数は `.env.example` を参照してください。"
    )


def render_login_page(components: AppComponents):
    st.title("🔑 ログイン")

    with st.form("login"):
        uid = st.text_input("ユーザーID")
        display_name = st.text_input("表示名（任意）")
        email = st.text_input("メールアドレス（任意）")
        submitted = st.form_submit_button("ログイン", type="primary")

    if submitted:
        if not uid.strip():
            st.error("ユーザーIDを入力してください")
            return
        run_async(components.profile_flow.sign_in(
            uid.strip(),
            display_name=display_name.strip() or None,
            email=email.strip() or None,
        ))
        st.rerun()


def render_dashboard_page(components: AppComponents):
    """Entry form, this month's total and the expense list."""
    st.title("📝 ダッシュボード")
    expense_flow = components.expense_flow
    taxonomy_flow = components.taxonomy_flow

    categories_result = run_async(taxonomy_flow.load_categories())
    tags_result = run_async(taxonomy_flow.load_tags())
    expenses_result = run_async(expense_flow.load_expenses())
    payment_methods = run_async(expense_flow.payment_method_choices())

    for result in (categories_result, tags_result, expenses_result):
        if not result.ok:
            st.error(result.error)

    categories: list[Category] = categories_result.items
    tags: list[Tag] = tags_result.items
    expenses = expenses_result.items

    totals = expense_flow.current_month_totals(expenses)
    st.markdown("### 今月の支出")
    st.markdown(f'<div class="big-number">{yen(totals.total)}</div>', unsafe_allow_html=True)
    st.caption(f"{totals.count} 件")

    st.markdown("---")
    st.markdown("### 支出を登録")

    category_names = [category.name for category in categories]
    big_category = st.selectbox("カテゴリー", options=[""] + category_names)
    tag_options = expense_flow.tag_choices(big_category, categories, tags)

    with st.form("expense_form", clear_on_submit=True):
        col1, col2 = st.columns(2)
        with col1:
            expense_date = st.date_input("日付", value=date.today())
            amount = st.text_input("金額", placeholder="1000")
        with col2:
            payment_method = st.selectbox("支払い方法", options=[""] + payment_methods)
            selected_tags = st.multiselect("タグ", options=tag_options)
        description = st.text_input("メモ")
        submitted = st.form_submit_button("登録", type="primary")

    if submitted:
        result = run_async(expense_flow.create_expense(
            expense_date,
            amount,
            big_category,
            payment_method,
            tags=selected_tags,
            description=description,
        ))
        notify(result, rerun=result.success)

    st.markdown("---")
    st.markdown("### 支出一覧")
    if not expenses:
        st.info("支出はまだありません")
        return

    for expense in expenses:
        label = expense.date.strftime("%Y/%m/%d") if expense.date else "----/--/--"
        with st.expander(f"{label}  {expense.big_category}  {yen(expense.amount)}"):
            st.markdown(f"**支払い方法:** {expense.payment_method}")
            st.markdown(f"**タグ:** {expense.tags or '-'}")
            st.markdown(f"**メモ:** {expense.description or '-'}")

            category_options = _with_current(category_names, expense.big_category)
            edit_category = st.selectbox(
                "カテゴリー",
                options=category_options,
                index=category_options.index(expense.big_category),
                key=f"edit_category_{expense.id}",
            )
            edit_tag_options = _with_current(
                expense_flow.tag_choices(edit_category, categories, tags),
                *expense.tag_names,
            )

            with st.form(f"edit_{expense.id}"):
                col1, col2 = st.columns(2)
                with col1:
                    new_date = st.date_input(
                        "日付",
                        value=expense.date.date() if expense.date else date.today(),
                    )
                    new_amount = st.text_input("金額", value=str(expense.amount))
                with col2:
                    method_options = _with_current(payment_methods, expense.payment_method)
                    new_payment_method = st.selectbox(
                        "支払い方法",
                        options=method_options,
                        index=method_options.index(expense.payment_method),
                    )
                    new_tags = st.multiselect(
                        "タグ", options=edit_tag_options, default=expense.tag_names,
                    )
                new_description = st.text_input("メモ", value=expense.description)
                col1, col2 = st.columns(2)
                with col1:
                    save = st.form_submit_button("更新")
                with col2:
                    delete = st.form_submit_button("削除")

            if save:
                changes = expense_flow.changed_fields(
                    expense,
                    new_date,
                    new_amount,
                    edit_category,
                    new_payment_method,
                    new_tags,
                    new_description,
                )
                if not changes:
                    st.info("変更はありません")
                else:
                    result = run_async(expense_flow.update_expense(expense.id, **changes))
                    notify(result, rerun=result.success)
            if delete:
                result = run_async(expense_flow.delete_expense(expense.id))
                notify(result, rerun=result.success)


def render_taxonomy_page(components: AppComponents):
    """Category and tag management."""
    st.title("🗂 カテゴリー・タグ管理")
    flow = components.taxonomy_flow

    categories_result = run_async(flow.load_categories())
    tags_result = run_async(flow.load_tags())
    for result in (categories_result, tags_result):
        if not result.ok:
            st.error(result.error)
    categories: list[Category] = categories_result.items
    tags: list[Tag] = tags_result.items

    if not categories and categories_result.ok:
        st.info("カテゴリーがありません")
        if st.button("初期データを追加"):
            notify(run_async(flow.seed_default_categories(categories)), rerun=True)

    # Categories
    st.markdown("### カテゴリー")
    with st.form("new_category", clear_on_submit=True):
        name = st.text_input("カテゴリー名")
        if st.form_submit_button("追加", type="primary"):
            notify(run_async(flow.create_category(name, categories)), rerun=True)

    for category in categories:
        with st.expander(category.name):
            new_name = st.text_input("名前", value=category.name, key=f"cat_name_{category.id}")
            col1, col2 = st.columns(2)
            with col1:
                if st.button("更新", key=f"cat_update_{category.id}"):
                    notify(run_async(flow.update_category(category.id, new_name, categories)), rerun=True)
            with col2:
                st.caption(f"「{category.name}」を削除すると、このカテゴリーに関連するタグも削除されます。")
                if st.button("削除", key=f"cat_delete_{category.id}"):
                    notify(run_async(flow.delete_category(category.id)), rerun=True)

    render_reorder_controls(
        "カテゴリーの並び替え",
        "cat",
        categories,
        lambda moved, target: flow.reorder_categories(categories, moved, target),
    )

    # Tags
    st.markdown("---")
    st.markdown("### タグ")
    if not categories:
        return

    by_id = {category.id: category for category in categories}
    with st.form("new_tag", clear_on_submit=True):
        tag_name = st.text_input("タグ名")
        category_id = st.selectbox(
            "カテゴリー",
            options=[""] + list(by_id),
            format_func=lambda cid: by_id[cid].name if cid else "選択してください",
        )
        if st.form_submit_button("追加", type="primary"):
            notify(run_async(flow.create_tag(tag_name, category_id or None, categories, tags)), rerun=True)

    for category in categories:
        category_tags = [tag for tag in tags if tag.category_id == category.id]
        if not category_tags:
            continue
        st.markdown(f"#### {category.name}")
        for tag in category_tags:
            col1, col2, col3 = st.columns([3, 1, 1])
            with col1:
                new_name = st.text_input("名前", value=tag.name, key=f"tag_name_{tag.id}")
            with col2:
                if st.button("更新", key=f"tag_update_{tag.id}"):
                    notify(
                        run_async(flow.update_tag(tag.id, new_name, tag.category_id, categories, tags)),
                        rerun=True,
                    )
            with col3:
                if st.button("削除", key=f"tag_delete_{tag.id}"):
                    notify(run_async(flow.delete_tag(tag.id)), rerun=True)

        render_reorder_controls(
            f"{category.name} のタグの並び替え",
            f"tag_{category.id}",
            category_tags,
            lambda moved, target: flow.reorder_tags(tags, moved, target),
        )


def render_reorder_controls(title, key, items, reorder):
    """Pick an item and the item whose position it should take."""
    if len(items) < 2:
        return
    by_id = {item.id: item for item in items}
    with st.expander(title):
        moved = st.selectbox(
            "移動する項目", options=list(by_id),
            format_func=lambda i: by_id[i].name, key=f"{key}_moved",
        )
        target = st.selectbox(
            "移動先", options=list(by_id),
            format_func=lambda i: by_id[i].name, key=f"{key}_target",
        )
        if st.button("並び替え", key=f"{key}_apply"):
            notify(run_async(reorder(moved, target)), rerun=True)


def render_summary_page(components: AppComponents):
    """Monthly totals, trend and category breakdown."""
    st.title("📊 月別集計")
    flow = components.summary_flow
    summary = run_async(flow.load_summary())

    if summary.error:
        st.error(summary.error)
        return
    if not summary.buckets:
        st.info("支出データがありません")
        return

    col1, col2 = st.columns(2)
    with col1:
        st.metric("総支出", yen(summary.grand_total))
    with col2:
        st.metric("月数", summary.month_count)

    st.markdown("### 月別推移")
    st.line_chart(
        [{"月": point.label, "金額": float(point.amount)} for point in summary.time_series],
        x="月",
        y="金額",
    )

    for bucket in summary.buckets:
        with st.expander(f"{bucket.label}  {yen(bucket.total)}（{bucket.count}件）"):
            shares = flow.category_shares(bucket)
            st.bar_chart(
                [{"カテゴリー": share.name, "金額": float(share.value)} for share in shares],
                x="カテゴリー",
                y="金額",
            )
            st.table([
                {"カテゴリー": share.name, "金額": yen(share.value), "割合": f"{share.percentage}%"}
                for share in shares
            ])


def render_search_page(components: AppComponents):
    st.title("🔍 支出検索")
    flow = components.search_flow

    loaded = run_async(flow.load_expenses())
    if not loaded.ok:
        st.error(loaded.error)
    expenses = loaded.items

    categories = run_async(components.taxonomy_flow.load_categories()).items
    tags = run_async(components.taxonomy_flow.load_tags()).items
    payment_methods = run_async(components.expense_flow.payment_method_choices())

    if "search_filter" not in st.session_state:
        st.session_state.search_filter = flow.default_filter()
    current: ExpenseFilter = st.session_state.search_filter

    years = flow.year_choices(expenses)
    with st.form("search"):
        col1, col2 = st.columns(2)
        with col1:
            year = st.selectbox(
                "年", options=[None] + years,
                index=([None] + years).index(current.year) if current.year in years else 0,
                format_func=lambda y: "すべて" if y is None else f"{y}年",
            )
        with col2:
            months = [None] + list(range(1, 13))
            month = st.selectbox(
                "月", options=months,
                index=months.index(current.month) if current.month in months else 0,
                format_func=lambda m: "すべて" if m is None else f"{m}月",
            )
        selected_categories = st.multiselect(
            "カテゴリー", options=[c.name for c in categories],
            default=[c.name for c in categories if c.name in current.categories],
        )
        selected_tags = st.multiselect(
            "タグ", options=sorted({t.name for t in tags}),
            default=sorted(name for name in current.tags if name in {t.name for t in tags}),
        )
        selected_methods = st.multiselect(
            "支払い方法", options=payment_methods,
            default=[m for m in payment_methods if m in current.payment_methods],
        )
        col1, col2 = st.columns(2)
        with col1:
            search = st.form_submit_button("検索", type="primary")
        with col2:
            clear = st.form_submit_button("クリア")

    if search:
        st.session_state.search_filter = ExpenseFilter(
            year=year,
            month=month,
            categories=selected_categories,
            tags=selected_tags,
            payment_methods=selected_methods,
        )
        st.rerun()
    if clear:
        st.session_state.search_filter = flow.cleared_filter()
        st.rerun()

    result = flow.apply(expenses, current)
    col1, col2 = st.columns(2)
    with col1:
        st.metric("合計", yen(result.totals.total))
    with col2:
        st.metric("件数", result.totals.count)

    st.table([
        {
            "日付": e.date.strftime("%Y/%m/%d") if e.date else "",
            "カテゴリー": e.big_category,
            "タグ": e.tags,
            "支払い方法": e.payment_method,
            "金額": yen(e.amount),
            "メモ": e.description,
        }
        for e in result.expenses
    ])


def render_profile_page(components: AppComponents):
    st.title("👤 プロフィール")
    flow = components.profile_flow
    user = components.session.user

    current_name = run_async(flow.load_display_name()) or ""
    st.markdown(f"**ユーザーID:** {user.uid}")
    if user.email:
        st.markdown(f"**メールアドレス:** {user.email}")

    with st.form("profile"):
        name = st.text_input("表示名", value=current_name)
        if st.form_submit_button("保存", type="primary"):
            notify(run_async(flow.update_display_name(name)))


if __name__ == "__main__":
    main()
