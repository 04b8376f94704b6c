from typing import Any, Dict, List, Optional

import pandas as pd
import requests
import streamlit as st
from dotenv import load_dotenv

load_dotenv()

st.set_page_config(page_title="Care Log AI Demo", layout="wide")

# ---------------------------
# Config
# ---------------------------
DEFAULT_API_BASE = "http://127.0.0.1:8000"
API_BASE = st.sidebar.text_input("API Base URL", value=DEFAULT_API_BASE)

PROVENANCE_BADGES = {
    "ai-filled": "🤖 AI",
    "empty": "⬜ 未入力",
    "manual": "✍️ 手入力",
}

# ---------------------------
# Helpers (API)
# ---------------------------
def api_call(method: str, path: str, payload: Optional[Dict[str, Any]] = None,
             params: Optional[Dict[str, Any]] = None) -> Any:
    url = f"{API_BASE}{path}"
    r = requests.request(method, url, json=payload, params=params or {}, timeout=120)
    if r.status_code >= 400:
        raise RuntimeError(f"{r.status_code} {r.text}")
    return r.json()

def load_settings() -> Dict[str, Any]:
    return api_call("GET", "/settings/fields")

# ---------------------------
# Session state
# ---------------------------
if "draft" not in st.session_state:
    st.session_state.draft = None  # last DraftResponse

def reset_draft():
    st.session_state.draft = None

tab_input, tab_history, tab_settings, tab_chat = st.tabs(["記録入力", "履歴", "項目設定", "相談"])

# ---------------------------
# Input + review
# ---------------------------
with tab_input:
    st.subheader("1) 入力")
    text = st.text_area(
        "観察内容（自由記述）",
        value="お昼ご飯は全粥を8割、お茶を200ml飲みました。",
        height=100,
    )

    if st.button("✨ AI解析", disabled=not text.strip()):
        try:
            st.session_state.draft = api_call("POST", "/drafts", {"text": text})
        except Exception as e:
            st.error(f"AI解析に失敗しました。もう一度試してください。\n\n{e}")

    resp = st.session_state.draft
    if resp and resp.get("status") == "UNDER_REVIEW":
        st.subheader("2) 確認・修正")
        settings = load_settings()
        labels = settings.get("record_type_labels", {})
        types = list(labels.keys())
        current_type = resp["draft"]["record_type"]

        new_type = st.selectbox(
            "記録種別",
            types,
            index=types.index(current_type) if current_type in types else 0,
            format_func=lambda t: labels.get(t, t),
        )

        edits: List[Dict[str, Any]] = []
        for f in resp["fields"]:
            c1, c2, c3 = st.columns([2, 3, 1])
            c1.markdown(f"**{f.get('label') or f['key']}**  \n`{f['key']}`")
            new_val = c2.text_input(f["key"], value=f["value"], label_visibility="collapsed")
            c3.caption(PROVENANCE_BADGES.get(f["provenance"], f["provenance"]))
            if new_val != f["value"]:
                edits.append({"op": "set", "key": f["key"], "value": new_val})

        with st.expander("項目を追加 / 削除"):
            add_key = st.text_input("追加するキー（空欄なら自動）", value="")
            add_val = st.text_input("値", value="")
            want_add = st.checkbox("この項目を追加する")
            remove_keys = st.multiselect("削除する項目", [f["key"] for f in resp["fields"]])

        if want_add:
            edits.append({"op": "add", "key": add_key or None, "value": add_val})
        for k in remove_keys:
            edits.append({"op": "remove", "key": k})

        b1, b2, b3 = st.columns(3)
        if b1.button("🔁 修正を反映"):
            try:
                st.session_state.draft = api_call("POST", "/drafts/review", {
                    "draft_id": resp["draft_id"],
                    "edits": edits,
                    "record_type": new_type if new_type != current_type else None,
                })
                st.rerun()
            except Exception as e:
                st.error(str(e))
        if b2.button("💾 保存"):
            try:
                if edits or new_type != current_type:
                    api_call("POST", "/drafts/review", {
                        "draft_id": resp["draft_id"],
                        "edits": edits,
                        "record_type": new_type if new_type != current_type else None,
                    })
                st.session_state.draft = api_call("POST", "/drafts/save", {"draft_id": resp["draft_id"]})
                st.success("記録を保存しました！")
            except Exception as e:
                st.error(f"保存に失敗しました。\n\n{e}")
        if b3.button("🗑️ 破棄"):
            try:
                api_call("POST", "/drafts/discard", {"draft_id": resp["draft_id"]})
            except Exception as e:
                st.error(str(e))
            reset_draft()
            st.rerun()

    elif resp and resp.get("status") == "SAVED":
        st.success("保存済み")
        st.json(resp.get("record") or {})
        if st.button("次の記録へ"):
            reset_draft()
            st.rerun()

# ---------------------------
# History
# ---------------------------
with tab_history:
    st.subheader("最近の記録")
    limit = st.slider("件数", 10, 500, 100)
    try:
        records = api_call("GET", "/records", params={"limit": limit})
    except Exception as e:
        records = []
        st.error(str(e))

    if records:
        df = pd.DataFrame([
            {
                "id": r["id"],
                "種別": r["record_type"],
                "記録日時": r["recorded_at"],
                "内容": ", ".join(f"{k}: {v}" for k, v in (r.get("details") or {}).items()),
            }
            for r in records
        ])
        st.dataframe(df, use_container_width=True)

        del_id = st.number_input("削除するID", min_value=0, step=1, value=0)
        if st.button("削除") and del_id:
            try:
                api_call("DELETE", f"/records/{int(del_id)}")
                st.rerun()
            except Exception as e:
                st.error(str(e))
    else:
        st.caption("記録がありません。")

# ---------------------------
# Field settings
# ---------------------------
with tab_settings:
    st.subheader("記録項目の設定")
    try:
        settings = load_settings()
    except Exception as e:
        settings = None
        st.error(str(e))

    if settings:
        labels = settings.get("record_type_labels", {})
        rtype = st.selectbox("記録種別", list(settings["field_settings"].keys()),
                             format_func=lambda t: labels.get(t, t), key="settings_type")
        df = pd.DataFrame(settings["field_settings"][rtype])
        edited = st.data_editor(df, num_rows="dynamic", use_container_width=True, key=f"editor_{rtype}")

        c1, c2 = st.columns(2)
        if c1.button("設定を保存"):
            new_settings = dict(settings["field_settings"])
            new_settings[rtype] = [
                {k: v for k, v in row.items() if isinstance(v, str) and v != ""}
                for row in edited.fillna("").to_dict(orient="records")
                if str(row.get("key", "")).strip()
            ]
            try:
                api_call("PUT", "/settings/fields", new_settings)
                st.success("保存しました")
            except Exception as e:
                st.error(str(e))
        if c2.button("初期設定に戻す"):
            api_call("POST", "/settings/fields/reset")
            st.rerun()

# ---------------------------
# Records Q&A
# ---------------------------
with tab_chat:
    st.subheader("記録について相談")
    question = st.text_input("質問", value="最近の食事摂取量はどうですか？")
    if st.button("質問する") and question.strip():
        try:
            out = api_call("POST", "/chat", {"message": question})
            st.write(out["reply"])
            st.caption(f"参照した記録: {out['record_count']}件")
        except Exception as e:
            st.error(str(e))
