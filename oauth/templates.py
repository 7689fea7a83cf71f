"""HTML templates for the OAuth consent flow.

Pages are ``str.format`` templates; callers must pass values through
``html.escape`` first.

Theme colors:
- Background: #FAF9F7 (warm cream)
- Primary: #D97756 (terracotta)
- Primary hover: #C4684A
- Text: #1A1915 (dark charcoal)
- Secondary text: #6B6860
- Border: #E5E4E0, #D9D8D4
"""

_BASE_STYLE = """
        body {{ font-family: 'Söhne', -apple-system, BlinkMacSystemFont, 'Segoe UI', sans-serif;
               background: #FAF9F7;
               min-height: 100vh; display: flex; align-items: center; justify-content: center; margin: 0; }}
        .container {{ background: white; padding: 40px; border-radius: 16px; box-shadow: 0 4px 24px rgba(0,0,0,0.08);
                     width: 100%; max-width: 450px; border: 1px solid #E5E4E0; }}
        h1 {{ margin: 0 0 8px; color: #1A1915; font-size: 24px; font-weight: 600; }}
        p {{ color: #6B6860; margin: 0 0 24px; }}
"""

# ============== Consent ==============

CONSENT_PAGE = """
<!DOCTYPE html>
<html>
<head>
    <title>Authorize - MCP Session Gateway</title>
    <style>
""" + _BASE_STYLE + """
        .app-info {{ display: flex; align-items: center; gap: 15px; padding: 20px; background: #F5F5F0;
                    border-radius: 8px; margin: 20px 0; }}
        .app-icon {{ width: 50px; height: 50px; background: #D97756; border-radius: 10px;
                    display: flex; align-items: center; justify-content: center; color: white; font-size: 24px; font-weight: 600; }}
        .app-name {{ font-weight: 600; color: #1A1915; word-break: break-all; }}
        .scopes {{ margin: 20px 0; }}
        .scope {{ display: flex; align-items: center; gap: 10px; padding: 12px; background: #F5F5F0;
                 border-radius: 8px; margin-bottom: 10px; }}
        .scope-icon {{ color: #D97756; font-weight: bold; }}
        .user-info {{ color: #6B6860; font-size: 14px; margin-bottom: 20px; }}
        .redirect {{ color: #6B6860; font-size: 13px; word-break: break-all; margin-bottom: 20px; }}
        .buttons {{ display: flex; gap: 12px; }}
        button {{ flex: 1; padding: 14px; border-radius: 8px; font-size: 15px; font-weight: 600; cursor: pointer; transition: all 0.2s; }}
        .allow {{ background: #D97756; color: white; border: none; }}
        .deny {{ background: white; color: #6B6860; border: 1px solid #D9D8D4; }}
        .allow:hover {{ background: #C4684A; }}
        .deny:hover {{ background: #F5F5F0; }}
    </style>
</head>
<body>
    <div class="container">
        <h1>Authorize Access</h1>
        <div class="user-info">Signed in as: {user_email}</div>
        <div class="app-info">
            <div class="app-icon">M</div>
            <div>
                <div class="app-name">{client_name}</div>
                <div style="color: #6B6860; font-size: 14px;">wants to access this MCP server</div>
            </div>
        </div>
        <div class="scopes">
            <div class="scope">
                <span class="scope-icon">✓</span>
                <span>Call server tools</span>
            </div>
            <div class="scope">
                <span class="scope-icon">✓</span>
                <span>Scope: {scope}</span>
            </div>
        </div>
        <div class="redirect">You will be redirected to {redirect_uri}</div>
        <form method="POST" action="/authorize">
            <input type="hidden" name="client_id" value="{client_id}">
            <input type="hidden" name="redirect_uri" value="{redirect_uri}">
            <input type="hidden" name="code_challenge" value="{code_challenge}">
            <input type="hidden" name="code_challenge_method" value="{code_challenge_method}">
            <input type="hidden" name="state" value="{state}">
            <input type="hidden" name="scope" value="{scope}">
            <div class="buttons">
                <button type="submit" name="action" value="deny" class="deny">Deny</button>
                <button type="submit" name="action" value="allow" class="allow">Allow</button>
            </div>
        </form>
    </div>
</body>
</html>
"""


# ============== Callback ==============

CALLBACK_PAGE = """
<!DOCTYPE html>
<html>
<head>
    <title>{title} - MCP Session Gateway</title>
    <style>
""" + _BASE_STYLE + """
        .field {{ padding: 12px; background: #F5F5F0; border-radius: 8px; margin-bottom: 10px;
                 font-family: monospace; font-size: 13px; word-break: break-all; }}
        .label {{ display: block; color: #6B6860; font-family: sans-serif; font-size: 12px; margin-bottom: 4px; }}
    </style>
</head>
<body>
    <div class="container">
        <h1>{title}</h1>
        <p>{message}</p>
        {fields}
    </div>
</body>
</html>
"""

CALLBACK_FIELD = '<div class="field"><span class="label">{label}</span>{value}</div>'
