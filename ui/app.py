"""Site Jobcards - Streamlit portal for site teams.

Browse your projects, manage each project item's WBS and jobcards, and
fill in HSE checklists. Scanning a jobcard QR code lands on
``?jobcard=<slug>`` which opens that jobcard directly.
"""

from __future__ import annotations

import os
from types import SimpleNamespace

import httpx
import streamlit as st

from jobcards.planning.wbs import walk_tree

# ── Configuration ─────────────────────────────────────────────────────────────

API_ROOT = os.environ.get("JOBCARDS_API_URL", "http://localhost:8000").rstrip("/")
API_BASE = f"{API_ROOT}/api"
HEALTH_URL = f"{API_ROOT}/health"

STATUS_LABELS = {"planned": "Planned", "in_progress": "In progress", "complete": "Complete"}
ROLE_OPTIONS = ["none", "member", "manager", "admin"]


# ── API Helpers ───────────────────────────────────────────────────────────────


def _headers() -> dict:
    token = st.session_state.get("token")
    return {"Authorization": f"Bearer {token}"} if token else {}


def _friendly_error(exc: Exception) -> str:
    """Return a short user-friendly error message."""
    msg = str(exc)
    if "Connection refused" in msg or "ConnectError" in msg:
        return "Cannot reach the Jobcards API server. Is it running?"
    if "timed out" in msg.lower() or "timeout" in msg.lower():
        return "The request timed out. Try again shortly."
    response = getattr(exc, "response", None)
    if response is not None:
        try:
            detail = response.json().get("detail", msg)
        except ValueError:
            detail = msg
        if response.status_code == 401:
            return "Your session has expired. Please sign in again."
        return str(detail)
    return f"API error: {msg}"


def api_get(path: str, **kwargs) -> dict | list | None:
    """GET request to the Jobcards API."""
    try:
        r = httpx.get(f"{API_BASE}{path}", headers=_headers(), timeout=30, **kwargs)
        r.raise_for_status()
        return r.json()
    except Exception as e:
        st.error(_friendly_error(e))
        return None


def api_post(path: str, data: dict | None = None) -> dict | None:
    """POST request to the Jobcards API."""
    try:
        r = httpx.post(f"{API_BASE}{path}", headers=_headers(), json=data, timeout=30)
        r.raise_for_status()
        return r.json() if r.content else {}
    except Exception as e:
        st.error(_friendly_error(e))
        return None


def api_put(path: str, data: dict | None = None) -> dict | None:
    """PUT request to the Jobcards API."""
    try:
        r = httpx.put(f"{API_BASE}{path}", headers=_headers(), json=data, timeout=30)
        r.raise_for_status()
        return r.json()
    except Exception as e:
        st.error(_friendly_error(e))
        return None


def api_patch(path: str, data: dict) -> dict | None:
    """PATCH request to the Jobcards API."""
    try:
        r = httpx.patch(f"{API_BASE}{path}", headers=_headers(), json=data, timeout=30)
        r.raise_for_status()
        return r.json()
    except Exception as e:
        st.error(_friendly_error(e))
        return None


def api_delete(path: str) -> dict | bool:
    """DELETE request to the Jobcards API. Returns the body (or True) on success."""
    try:
        r = httpx.delete(f"{API_BASE}{path}", headers=_headers(), timeout=30)
        r.raise_for_status()
        return r.json() if r.content else True
    except Exception as e:
        st.error(_friendly_error(e))
        return False


def api_bytes(path: str) -> bytes | None:
    try:
        r = httpx.get(f"{API_BASE}{path}", headers=_headers(), timeout=30)
        r.raise_for_status()
        return r.content
    except Exception as e:
        st.error(_friendly_error(e))
        return None


# ── Session ───────────────────────────────────────────────────────────────────


def _redeem_handoff(code: str) -> None:
    """Exchange the one-time sign-in code for a session token."""
    try:
        r = httpx.post(f"{API_BASE}/auth/exchange", json={"code": code}, timeout=10)
        r.raise_for_status()
    except Exception as e:
        st.session_state.auth_error = _friendly_error(e)
        return
    data = r.json()
    st.session_state.token = data["token"]
    st.session_state.me = data["user"]
    st.session_state.pop("auth_error", None)


# The API redirects back here with ?handoff=… after Azure sign-in.
params = st.query_params
if "handoff" in params:
    code = params["handoff"]
    del st.query_params["handoff"]
    st.session_state.pop("me", None)
    _redeem_handoff(code)
if "jobcard" in params:
    st.session_state.jobcard_slug = params["jobcard"]
    st.session_state.page = "Jobcard"


def _current_user() -> dict | None:
    """The signed-in user (cached per browser session), or None."""
    if "me" not in st.session_state:
        me = None
        try:
            r = httpx.get(f"{API_BASE}/auth/me", headers=_headers(), timeout=10)
            if r.status_code == 200:
                me = r.json()
        except httpx.HTTPError:
            me = None
        st.session_state.me = me
    return st.session_state.me


def _sign_out() -> None:
    api_post("/auth/logout")
    for key in ("token", "me", "selected_item", "jobcard_slug", "wbs_path"):
        st.session_state.pop(key, None)


def _user_label(user: dict) -> str:
    return user.get("full_name") or user.get("display_name") or user.get("email") or user["id"]


# ── Page Config ───────────────────────────────────────────────────────────────

st.set_page_config(
    page_title="Site Jobcards",
    page_icon="🦺",
    layout="wide",
    initial_sidebar_state="expanded",
)

# ── Sidebar ───────────────────────────────────────────────────────────────────

st.sidebar.title("🦺 Site Jobcards")
st.sidebar.caption("Projects · WBS · Jobcards · HSE")

try:
    health = httpx.get(HEALTH_URL, timeout=3).json()
    st.sidebar.success(f"API connected  (v{health.get('version', '?')})", icon="✅")
except Exception:
    st.sidebar.error("API unreachable", icon="🔴")

user = _current_user()

if user:
    st.sidebar.markdown(f"Signed in as **{_user_label(user)}**")
    if st.sidebar.button("Sign out"):
        _sign_out()
        st.rerun()
st.sidebar.divider()

pages = ["Dashboard", "Project Item", "Jobcard"]
if user and user.get("is_superuser"):
    pages.append("Admin")

current = st.session_state.get("page", "Dashboard")
page = st.sidebar.radio(
    "Navigate",
    pages,
    index=pages.index(current) if current in pages else 0,
    label_visibility="collapsed",
)
st.session_state.page = page


def _open_item(projectnumber: str, item_seq: int) -> None:
    st.session_state.selected_item = (projectnumber, item_seq)
    st.session_state.pop("wbs_path", None)
    st.session_state.page = "Project Item"


def _open_jobcard(qr_slug: str) -> None:
    st.session_state.jobcard_slug = qr_slug
    st.session_state.page = "Jobcard"


# ── Sign-in Page ──────────────────────────────────────────────────────────────


def page_sign_in():
    st.title("Site Jobcards")
    auth_error = st.query_params.get("auth_error") or st.session_state.get("auth_error")
    if auth_error:
        st.error(f"Sign-in failed: {auth_error}")
    st.markdown("Sign in with your company Microsoft account to see your projects.")
    st.link_button("Sign in with Microsoft", f"{API_BASE}/auth/login?redirect=true", type="primary")


# ── Dashboard Page ────────────────────────────────────────────────────────────


def page_dashboard():
    st.title("My projects")

    data = api_get("/projects")
    projects = data.get("projects", []) if data else []
    if not projects:
        st.info("You are not a member of any project yet. Ask a project admin for access.")
        return

    for project in projects:
        with st.container(border=True):
            st.markdown(
                f"### {project['projectnumber']}  \n"
                f"{project.get('description') or ''}"
            )
            st.caption(f"Your role: {project['role']}")
            items = project.get("items", [])
            if not items:
                st.caption("No items on this project.")
            for item in items:
                code = f"{item['projectnumber']}-{item['item_seq']:02d}"
                label = f"{code}  {item.get('line_desc') or ''}"
                if st.button(label, key=f"item-{code}"):
                    _open_item(item["projectnumber"], item["item_seq"])
                    st.rerun()

    st.subheader("Recent jobcards")
    jobcards = api_get("/jobcards", params={"limit": 20}) or []
    if not jobcards:
        st.caption("No jobcards yet.")
    for task in jobcards:
        col1, col2 = st.columns([4, 1])
        with col1:
            st.markdown(f"**{task['title']}**  \n`{task['qr_slug']}`")
        with col2:
            st.caption(STATUS_LABELS.get(task["status"], task["status"]))
            if st.button("Open", key=f"open-{task['id']}"):
                _open_jobcard(task["qr_slug"])
                st.rerun()


# ── Project Item Page ─────────────────────────────────────────────────────────


def _wbs_tree(nodes: list[dict]) -> list[tuple[dict, int, str]]:
    """Nodes in tree order as (node, depth, path)."""
    by_id = {n["id"]: n for n in nodes}
    objs = [SimpleNamespace(id=n["id"], parent_id=n["parent_id"], code=n["code"]) for n in nodes]
    path_map = {n["id"]: n["path"] for n in nodes}
    return [(by_id[obj.id], depth, path) for obj, depth, path in walk_tree(objs, path_map)]


def _wbs_editor(workspace: dict, selected_node: dict | None, base: str):
    pn = workspace["item"]["projectnumber"]
    seq = workspace["item"]["item_seq"]
    target = selected_node["path"] if selected_node else base

    with st.expander(f"➕ Add WBS level under {target}"):
        with st.form("add_wbs"):
            name = st.text_input("Name")
            description = st.text_area("Description")
            if st.form_submit_button("Add level", type="primary") and name:
                result = api_post(
                    f"/projects/{pn}/items/{seq}/wbs",
                    {
                        "parent_id": selected_node["id"] if selected_node else None,
                        "name": name,
                        "description": description or None,
                    },
                )
                if result:
                    st.toast(f"Added {result['path']}", icon="✅")
                    st.rerun()

    if not selected_node:
        return

    with st.expander(f"✏️ Edit {selected_node['path']}"):
        with st.form("edit_wbs"):
            name = st.text_input("Name", value=selected_node["name"])
            description = st.text_area("Description", value=selected_node.get("description") or "")
            if st.form_submit_button("Save"):
                if api_patch(
                    f"/wbs/{selected_node['id']}",
                    {"name": name, "description": description or None},
                ):
                    st.toast("WBS level updated", icon="✅")
                    st.rerun()

    if st.button(f"🗑️ Delete {selected_node['path']}"):
        result = api_delete(f"/wbs/{selected_node['id']}")
        if result:
            st.session_state.wbs_path = result.get("parent_path", base)
            st.toast("WBS level deleted", icon="🗑️")
            st.rerun()


def _jobcard_edit_form(task: dict, form_key: str):
    with st.form(form_key):
        title = st.text_input("Title", value=task["title"])
        description = st.text_area("Description", value=task.get("description") or "")
        statuses = list(STATUS_LABELS)
        status = st.selectbox(
            "Status",
            statuses,
            index=statuses.index(task["status"]) if task["status"] in statuses else 0,
            format_func=STATUS_LABELS.get,
        )
        if st.form_submit_button("Save"):
            if api_patch(
                f"/jobcards/{task['id']}",
                {"title": title, "description": description or None, "status": status},
            ):
                st.toast("Jobcard updated", icon="✅")
                st.rerun()


def _jobcard_list(workspace: dict, selected_path: str, selected_node: dict | None):
    pn = workspace["item"]["projectnumber"]
    seq = workspace["item"]["item_seq"]
    nodes = workspace["nodes"]

    st.subheader(f"Jobcards under {selected_path}")

    if workspace["can_edit"] and nodes:
        with st.expander("➕ New jobcard", expanded=False):
            node_labels = {n["id"]: f"{n['path']}  {n['name']}" for n in nodes}
            default = selected_node["id"] if selected_node else nodes[0]["id"]
            with st.form("create_jobcard"):
                node_id = st.selectbox(
                    "WBS level",
                    list(node_labels),
                    index=list(node_labels).index(default),
                    format_func=node_labels.get,
                )
                title = st.text_input("Title")
                description = st.text_area("Description")
                if st.form_submit_button("Create jobcard", type="primary") and title:
                    result = api_post(
                        f"/projects/{pn}/items/{seq}/jobcards",
                        {"wbs_node_id": node_id, "title": title, "description": description or None},
                    )
                    if result:
                        st.toast(f"Created {result['qr_slug']}", icon="✅")
                        st.rerun()

    tasks = api_get(f"/projects/{pn}/items/{seq}/jobcards", params={"path": selected_path}) or []
    if not tasks:
        st.caption("No jobcards at this level.")
    for task in tasks:
        with st.container(border=True):
            col1, col2 = st.columns([4, 1])
            with col1:
                st.markdown(f"**{task['wbs_path']}**  {task['title']}")
                if task.get("description"):
                    st.caption(task["description"])
                if workspace["can_edit"]:
                    with st.expander("✏️ Edit"):
                        _jobcard_edit_form(task, f"edit-{task['id']}")
            with col2:
                st.caption(STATUS_LABELS.get(task["status"], task["status"]))
                if st.button("Open", key=f"open-{task['id']}"):
                    _open_jobcard(task["qr_slug"])
                    st.rerun()
                if workspace["can_edit"] and st.button("Delete", key=f"del-{task['id']}"):
                    if api_delete(f"/jobcards/{task['id']}"):
                        st.toast("Jobcard deleted", icon="🗑️")
                        st.rerun()


def page_project_item():
    selected = st.session_state.get("selected_item")
    if not selected:
        st.warning("Pick a project item on the Dashboard first.")
        return
    pn, seq = selected

    workspace = api_get(f"/projects/{pn}/items/{seq}")
    if not workspace:
        return

    base = workspace["base_code"]
    st.title(f"{base}  {workspace['item'].get('line_desc') or ''}")
    st.caption(f"Your role: {workspace.get('role') or 'none'}")
    if workspace.get("read_only_notice"):
        st.info(workspace["read_only_notice"])

    tree = _wbs_tree(workspace["nodes"])
    paths = [base] + [path for _, _, path in tree]
    labels = {base: f"{base}  (all)"}
    for node, depth, path in tree:
        labels[path] = f"{'    ' * depth}{path}  {node['name']}"

    selected_path = st.session_state.get("wbs_path", base)
    if selected_path not in paths:
        selected_path = base

    col_tree, col_cards = st.columns([2, 3])
    with col_tree:
        st.subheader("WBS")
        selected_path = st.radio(
            "WBS level",
            paths,
            index=paths.index(selected_path),
            format_func=labels.get,
            label_visibility="collapsed",
        )
        st.session_state.wbs_path = selected_path
        selected_node = next((n for n, _, p in tree if p == selected_path), None)
        if workspace["can_edit"]:
            _wbs_editor(workspace, selected_node, base)

    with col_cards:
        _jobcard_list(workspace, selected_path, selected_node)


# ── Jobcard Page ──────────────────────────────────────────────────────────────


def _checklist_form(detail: dict):
    task = detail["task"]
    checklist = detail["checklist"]
    summary = detail["summary"]

    st.subheader("HSE checklist")
    if not checklist:
        st.caption("No HSE topics attached to this jobcard.")
        return

    st.progress(
        summary["answered"] / summary["total"] if summary["total"] else 0.0,
        text=f"{summary['answered']} of {summary['total']} answered",
    )

    with st.form("hse_checklist"):
        answers: dict[str, str] = {}
        for entry in checklist:
            topic = entry["topic"]
            st.markdown(f"**{topic['code']} · {topic['name']}**")
            if topic.get("regulatory_ref"):
                st.caption(topic["regulatory_ref"])
            for q in entry["questions"]:
                label = q["question_text"] + (" *" if q["required"] else "")
                if q["answered"]:
                    response = q["response"]
                    who = response.get("responder_name") or "unknown"
                    st.markdown(f"{label}  \n✅ **{response['response_value']}** by {who}")
                    continue
                if not detail["can_fill"]:
                    st.markdown(f"{label}  \n_Not answered_")
                    continue
                if q["response_type"] == "yes_no":
                    value = st.radio(label, ["", "Yes", "No"], horizontal=True, key=f"q-{q['id']}")
                else:
                    value = st.text_input(label, key=f"q-{q['id']}")
                if value:
                    answers[q["id"]] = value

        responder = st.text_input("Your name", value=_user_label(user) if user else "")
        submitted = st.form_submit_button(
            "Save HSE responses", type="primary", disabled=not detail["can_fill"]
        )
        if submitted:
            result = api_post(
                f"/jobcards/{task['id']}/hse/responses",
                {"responder_name": responder or None, "answers": answers},
            )
            if result:
                st.toast(result["message"], icon="🦺")
                st.rerun()


def page_jobcard():
    slug = st.session_state.get("jobcard_slug")
    if not slug:
        st.warning("Open a jobcard from a project item, or scan its QR code.")
        return

    detail = api_get(f"/jobcards/{slug}")
    if not detail:
        return
    task = detail["task"]

    st.title(task["title"])
    st.caption(f"{detail['wbs_path']}  ·  {detail['status_label']}  ·  role: {detail.get('role')}")
    if detail.get("item"):
        if st.button(f"← {detail['base_code']}  {detail['item'].get('line_desc') or ''}"):
            _open_item(detail["item"]["projectnumber"], detail["item"]["item_seq"])
            st.session_state.wbs_path = detail["wbs_path"]
            st.rerun()

    col1, col2 = st.columns([3, 1])
    with col1:
        if task.get("description"):
            st.markdown(task["description"])
        if detail["can_edit"]:
            with st.expander("✏️ Edit jobcard"):
                _jobcard_edit_form(task, "edit_jobcard")
    with col2:
        png = api_bytes(f"/jobcards/{slug}/qr.png")
        if png:
            st.image(png, caption=task["qr_slug"], width=180)
        st.caption(detail["jobcard_url"])

    if detail["can_edit"] and detail["topics"]:
        st.subheader("HSE topics")
        attached = set(detail["attached_topic_ids"])
        for topic in detail["topics"]:
            on = st.checkbox(
                f"{topic['code']} · {topic['name']}",
                value=topic["id"] in attached,
                key=f"topic-{topic['id']}",
            )
            if on and topic["id"] not in attached:
                if api_put(f"/jobcards/{task['id']}/hse/topics/{topic['id']}"):
                    st.rerun()
            elif not on and topic["id"] in attached:
                if api_delete(f"/jobcards/{task['id']}/hse/topics/{topic['id']}"):
                    st.rerun()

    st.divider()
    _checklist_form(detail)


# ── Admin Page ────────────────────────────────────────────────────────────────


def page_admin():
    st.title("Project access")
    if not (user and user.get("is_superuser")):
        st.error("This page is for superusers only.")
        return

    users = api_get("/admin/users") or []
    if not users:
        st.info("No users have signed in yet.")
        return

    by_id = {u["id"]: u for u in users}
    user_id = st.selectbox("User", list(by_id), format_func=lambda uid: by_id[uid]["label"])
    query = st.text_input("Filter projects", placeholder="Number or description")

    projects = api_get("/admin/projects", params={"q": query} if query else None) or []
    memberships = api_get(f"/admin/users/{user_id}/memberships") or {}
    roles = memberships.get("roles", {})

    if not projects:
        st.caption("No projects match.")
    for project in projects:
        pn = project["projectnumber"]
        current_role = roles.get(pn, "none")
        col1, col2 = st.columns([2, 3])
        with col1:
            st.markdown(f"**{project['display_number']}**  \n{project.get('description') or ''}")
        with col2:
            role = st.radio(
                f"Role on {pn}",
                ROLE_OPTIONS,
                index=ROLE_OPTIONS.index(current_role),
                horizontal=True,
                key=f"role-{user_id}-{pn}",
                label_visibility="collapsed",
            )
        if role != current_role:
            if api_put(f"/admin/users/{user_id}/memberships/{pn}", {"role": role}):
                st.toast(f"{by_id[user_id]['label']}: {role} on {pn}", icon="✅")
                st.rerun()

    st.divider()
    with st.expander("➕ Register project"):
        with st.form("create_project"):
            number = st.text_input("Project number", placeholder="10305")
            description = st.text_input("Description")
            if st.form_submit_button("Register", type="primary") and number:
                if api_post("/admin/projects", {"projectnumber": number, "description": description or None}):
                    st.toast(f"Project {number} registered", icon="✅")
                    st.rerun()

    with st.expander("➕ Add project item"):
        with st.form("create_item"):
            numbers = [p["projectnumber"] for p in projects]
            pn = st.selectbox("Project", numbers) if numbers else None
            seq = st.number_input("Item sequence", min_value=0, max_value=999, value=1)
            line_desc = st.text_input("Line description")
            if st.form_submit_button("Add item") and pn:
                if api_post(f"/admin/projects/{pn}/items", {"item_seq": int(seq), "line_desc": line_desc}):
                    st.toast(f"Item {pn}-{int(seq):02d} added", icon="✅")
                    st.rerun()


# ── Router ────────────────────────────────────────────────────────────────────

page_map = {
    "Dashboard": page_dashboard,
    "Project Item": page_project_item,
    "Jobcard": page_jobcard,
    "Admin": page_admin,
}

if user is None:
    page_sign_in()
else:
    page_map[page]()
