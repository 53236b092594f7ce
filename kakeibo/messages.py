"""
User-facing messages.

All notifications shown by the UI come from here so wording stays
consistent between pages. Keys are stable; values are Japanese.
"""

MESSAGES: dict[str, str] = {
    # Validation
    "required_fields": "必須項目を入力してください",
    "invalid_amount": "有効な金額を入力してください",
    "category_name_required": "カテゴリー名を入力してください",
    "tag_name_required": "タグ名を入力してください",
    "payment_method_name_required": "支払い方法名を入力してください",
    "category_required": "カテゴリーを選択してください",
    "category_not_found": "カテゴリーが見つかりません",
    "duplicate_category": "同じ名前のカテゴリーが既に存在します",
    "duplicate_tag": "このカテゴリーに同じ名前のタグが既に存在します",
    "duplicate_payment_method": "同じ名前の支払い方法が既に存在します",
    "display_name_required": "名前を入力してください",
    "nothing_to_update": "変更する項目がありません",

    # Success
    "category_created": "カテゴリーを追加しました",
    "category_updated": "カテゴリーを更新しました",
    "category_deleted": "カテゴリーを削除しました",
    "tag_created": "タグを追加しました",
    "tag_updated": "タグを更新しました",
    "tag_deleted": "タグを削除しました",
    "payment_method_created": "支払い方法を追加しました",
    "payment_method_updated": "支払い方法を更新しました",
    "payment_method_deleted": "支払い方法を削除しました",
    "expense_created": "支出を登録しました",
    "expense_updated": "支出を更新しました",
    "expense_deleted": "支出を削除しました",
    "order_updated": "順序を更新しました",
    "defaults_seeded": "初期データを追加しました",
    "profile_updated": "プロフィールを更新しました",

    # Failures
    "load_failed": "データの読み込みに失敗しました",
    "category_create_failed": "カテゴリーの作成に失敗しました",
    "category_update_failed": "カテゴリーの更新に失敗しました",
    "category_delete_failed": "カテゴリーの削除に失敗しました",
    "category_delete_partial": "カテゴリーの削除が途中で失敗しました。一部のタグが削除されています",
    "tag_create_failed": "タグの作成に失敗しました",
    "tag_update_failed": "タグの更新に失敗しました",
    "tag_delete_failed": "タグの削除に失敗しました",
    "payment_method_create_failed": "支払い方法の作成に失敗しました",
    "payment_method_update_failed": "支払い方法の更新に失敗しました",
    "payment_method_delete_failed": "支払い方法の削除に失敗しました",
    "expense_create_failed": "支出の登録に失敗しました",
    "expense_update_failed": "支出の更新に失敗しました",
    "expense_delete_failed": "支出の削除に失敗しました",
    "order_update_failed": "順序の更新に失敗しました",
    "defaults_seed_failed": "初期データの追加に失敗しました",
    "profile_update_failed": "プロフィールの更新に失敗しました",
    "not_signed_in": "ログインしてください",
}


def message(key: str) -> str:
    """Look up a user-facing message; unknown keys fall back to the key."""
    return MESSAGES.get(key, key)
