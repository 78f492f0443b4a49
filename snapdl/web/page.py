from __future__ import annotations

import html

HTML = """
<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8"/>
  <meta name="viewport" content="width=device-width,initial-scale=1"/>
  <title>__APP_NAME__</title>
  <style>
    :root{
      --bg:#0f1115;--card:#151821;--fg:#e8eaf0;--muted:#a7b0c0;--accent:#5aa2ff;
      --ok:#35c46a;--err:#ff5d6c;--border:#222838;--chip:#1f2430;
      --shadow:0 4px 14px rgba(0,0,0,.25);
    }
    @media (prefers-color-scheme: light){
      :root{
        --bg:#f7f8fb;--card:#ffffff;--fg:#0f1115;--muted:#5a667a;--accent:#0b6bff;
        --ok:#1ea65a;--err:#d93451;--border:#e5e9f2;--chip:#f2f5fb;
        --shadow:0 8px 24px rgba(16,24,40,.08);
      }
    }
    *{box-sizing:border-box}
    body{font-family:system-ui,-apple-system,Segoe UI,Arial,sans-serif;margin:0;background:var(--bg);color:var(--fg)}
    .wrap{max-width:760px;margin:0 auto;padding:16px;display:grid;gap:12px}
    .card{background:var(--card);padding:14px;border-radius:14px;box-shadow:var(--shadow);border:1px solid var(--border)}
    .row{display:flex;flex-wrap:wrap;gap:8px;align-items:center}
    input[type=url],input[type=text]{flex:1;min-width:220px;padding:10px;border-radius:10px;border:1px solid var(--border);background:var(--chip);color:var(--fg)}
    .chip{background:var(--chip);border:1px solid var(--border);border-radius:10px;padding:8px 10px;color:var(--muted)}
    .btn{padding:10px 14px;border:none;border-radius:10px;background:var(--accent);color:#fff;cursor:pointer}
    .btn.ghost{background:transparent;border:1px solid var(--accent);color:var(--accent)}
    .muted{color:var(--muted)}
    .progress{height:10px;background:rgba(255,255,255,.06);border:1px solid var(--border);border-radius:8px;overflow:hidden}
    .bar{height:100%;width:0%;background:linear-gradient(90deg,#6aa6ff,#79ffa7);transition:width .3s}
    .badge{padding:3px 10px;border-radius:999px;font-size:12px;background:var(--chip);border:1px solid var(--border)}
    .b-done{color:var(--ok)} .b-error{color:var(--err)}
    ul{list-style:none;padding:0;margin:0;display:grid;gap:6px}
    a{color:var(--accent)}
  </style>
</head>
<body>
<div class="wrap">
  <h2 style="margin:0">__APP_NAME__</h2>
  <form id="form" class="card" style="display:grid;gap:10px">
    <div class="row">
      <input id="url" name="url" type="url" placeholder="https://..." required/>
      <button class="btn ghost" type="button" onclick="preview()">Preview</button>
    </div>
    <div class="row">
      <label class="chip"><input type="checkbox" name="audioOnly" value="true"/> Audio only (MP3)</label>
      <label class="chip"><input type="checkbox" name="toGif" value="true"/> Make GIF</label>
      <select id="formatId" name="formatId" class="chip"><option value="">Best quality</option></select>
      <input id="selection" name="selection" type="text" placeholder="Playlist items, e.g. 1-3,7"/>
    </div>
    <div class="row"><button class="btn" type="submit">Download</button></div>
    <div id="info" class="muted"></div>
  </form>

  <div class="card">
    <div class="row" style="justify-content:space-between">
      <span id="status" class="muted">Idle</span><span id="pct" class="muted"></span>
    </div>
    <div class="progress"><div id="bar" class="bar"></div></div>
    <div id="result" style="margin-top:8px"></div>
  </div>

  <div class="card">
    <h3 style="margin:0 0 8px 0">History</h3>
    <ul id="history"></ul>
  </div>
</div>

<script>
const $ = (id) => document.getElementById(id);
const esc = (s) => String(s ?? '').replace(/[&<>"]/g, c => ({'&':'&amp;','<':'&lt;','>':'&gt;','"':'&quot;'}[c]));

async function preview(){
  const url = $('url').value.trim();
  if(!url) return;
  $('info').textContent = 'Probing...';
  const r = await fetch('/api/preview', {method:'POST', body:new URLSearchParams({url})});
  const j = await r.json().catch(()=>({}));
  if(!r.ok){ $('info').textContent = 'Preview failed: ' + (j.detail || r.status); return; }
  $('info').innerHTML = `<b>${esc(j.title)}</b> <span class="badge">${esc(j.platform)}</span>`
    + (j.is_playlist ? ` &middot; ${j.entries.length} items` : '');
  const sel = $('formatId');
  sel.innerHTML = '<option value="">Best quality</option>';
  (j.formats || []).forEach(f => {
    const o = document.createElement('option');
    o.value = f.format_id;
    o.textContent = `${f.format_id} ${f.ext || ''} ${f.resolution || ''}`;
    sel.appendChild(o);
  });
}

function render(s){
  $('status').innerHTML = `<span class="badge b-${esc(s.status)}">${esc(s.status)}</span> ${esc(s.title || '')}`;
  $('pct').textContent = s.progress || '';
  $('bar').style.width = parseFloat(s.progress || '0') + '%';
  if(s.status === 'done'){
    let h = `<a href="/d/${encodeURIComponent(s.file)}">Download ${esc(s.file)}</a>`;
    if(s.gif) h += ` &middot; <a href="/d/${encodeURIComponent(s.gif)}">GIF</a>`;
    $('result').innerHTML = h;
  } else if(s.status === 'error'){
    $('result').innerHTML = `<span class="b-error">${esc(s.error)}</span>`;
  }
}

function follow(jobId){
  const es = new EventSource('/api/stream/' + jobId);
  es.onmessage = (ev) => {
    const s = JSON.parse(ev.data);
    render(s);
    if(s.status === 'done' || s.status === 'error'){ es.close(); loadHistory(); }
  };
  es.onerror = () => es.close();
}

$('form').addEventListener('submit', async (ev) => {
  ev.preventDefault();
  $('result').innerHTML = '';
  const r = await fetch('/api/download', {method:'POST', body:new URLSearchParams(new FormData($('form')))});
  const j = await r.json().catch(()=>({}));
  if(!r.ok){ $('status').textContent = 'Error: ' + (j.detail || r.status); return; }
  render({status:'queued', progress:'0%'});
  follow(j.job_id);
});

async function loadHistory(){
  const r = await fetch('/api/history');
  const items = await r.json().catch(()=>[]);
  $('history').innerHTML = items.map(it => `<li>
    <span class="badge b-${esc(it.status)}">${esc(it.status)}</span>
    ${it.file ? `<a href="/d/${encodeURIComponent(it.file)}">${esc(it.title || it.file)}</a>` : esc(it.title || it.id)}
    <span class="muted">${esc(it.platform)}</span></li>`).join('');
}
loadHistory();
</script>
</body>
</html>
"""


def render_page(app_name: str) -> str:
    return HTML.replace("__APP_NAME__", html.escape(app_name))
