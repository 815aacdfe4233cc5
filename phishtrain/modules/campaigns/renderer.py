"""
Campaign Renderer
=================

Builds the text and HTML bodies for simulation emails, debriefs and manager alerts.
HTML uses inline CSS only; EMAIL_STYLE in app config overrides the defaults.
"""

import html
import logging

from flask import current_app

from .catalog import TemplateCatalog

logger = logging.getLogger(__name__)

DEFAULT_STYLE = {
    'bg': '#ffffff',
    'text': '#222222',
    'text_secondary': '#666666',
    'link': '#1a56db',
    'border': '#dddddd',
    'font': "Arial, 'Helvetica Neue', sans-serif",
}


def _get_style():
    """Get email style from app config or defaults"""
    try:
        custom = current_app.config.get('EMAIL_STYLE', {})
        style = dict(DEFAULT_STYLE)
        style.update(custom)
        return style
    except RuntimeError:
        return dict(DEFAULT_STYLE)


def tracking_urls(base_url, token):
    """Pixel, click and landing URLs for one target"""
    base = (base_url or '').rstrip('/')
    return {
        'pixel': f"{base}/track/open/{token}.gif",
        'click': f"{base}/track/click/{token}",
        'landing': f"{base}/landing/{token}",
    }


def _paragraphs(text, style):
    return '\n'.join(
        f'<p style="margin:0 0 14px 0;line-height:1.6;color:{style["text"]};">'
        f'{html.escape(block).replace(chr(10), "<br/>")}</p>'
        for block in text.split('\n\n')
    )


def render_simulation(template, target, base_url):
    """Personalised simulation body for one target.

    Returns {'text', 'html'}; both carry the target's click link and the HTML
    also embeds the open-tracking pixel.
    """
    style = _get_style()
    urls = tracking_urls(base_url, target['token'])
    body = TemplateCatalog.render(template['body'], target.get('name'), target.get('department'))

    text = f"{body}\n\nAccess secure page: {urls['click']}"
    html_body = f'''<div style="font-family:{style['font']};background:{style['bg']};max-width:600px;">
    {_paragraphs(body, style)}
    <p style="margin:18px 0;"><a href="{urls['click']}" style="color:{style['link']};">Access secure page</a></p>
    <img src="{urls['pixel']}" alt="" width="1" height="1" style="display:none;"/>
</div>'''
    return {'text': text, 'html': html_body}


def render_debrief(campaign, debrief_url):
    """Fixed wrap-up message sent to every target when a campaign completes"""
    style = _get_style()
    name = campaign['name']
    subject = f"Security Simulation Debrief: {name}"
    text = (
        f'This message is a debrief for the internal phishing awareness simulation "{name}". '
        f'The exercise is complete, and no action is required. '
        f'Review the learning resources at {debrief_url}.'
    )
    html_body = f'''<div style="font-family:{style['font']};color:{style['text']};max-width:600px;">
    <p>This message is a debrief for the internal phishing awareness simulation <strong>{html.escape(name)}</strong>.
    The exercise is complete, and no action is required.</p>
    <p>Review the learning resources at <a href="{html.escape(debrief_url)}" style="color:{style['link']};">our security awareness page</a>.</p>
</div>'''
    return subject, text, html_body


def render_manager_alert(campaign, stats):
    """One-time alert to the campaign's manager when the click rate is high"""
    style = _get_style()
    name = campaign['name']
    click_pct = round(stats.get('clickRate', 0) * 100)
    subject = f"[Awareness] High click-through alert for campaign {name}"
    text = (
        f"{click_pct}% of recipients clicked the simulation email for {name} "
        f"({stats.get('clicked', 0)} clicks / {stats.get('delivered', 0)} delivered). "
        f"Please follow up with your team for additional coaching."
    )
    html_body = f'''<div style="font-family:{style['font']};max-width:600px;margin:0 auto;">
    <div style="background:#fffbeb;border-left:4px solid #ffc107;padding:16px 20px;margin-bottom:20px;">
        <h2 style="margin:0 0 8px 0;color:#b45309;font-size:18px;">High click-through: {html.escape(name)}</h2>
        <p style="margin:0;color:{style['text_secondary']};font-size:14px;">{click_pct}% of recipients clicked the simulation email.</p>
    </div>
    <table style="width:100%;border-collapse:collapse;margin-bottom:20px;">
        <tr style="border-bottom:1px solid {style['border']};">
            <td style="padding:8px 0;color:{style['text_secondary']};">Delivered</td>
            <td style="padding:8px 0;text-align:right;font-weight:600;">{stats.get('delivered', 0)}</td>
        </tr>
        <tr style="border-bottom:1px solid {style['border']};">
            <td style="padding:8px 0;color:{style['text_secondary']};">Clicked</td>
            <td style="padding:8px 0;text-align:right;font-weight:600;">{stats.get('clicked', 0)}</td>
        </tr>
        <tr>
            <td style="padding:8px 0;color:{style['text_secondary']};">Submitted</td>
            <td style="padding:8px 0;text-align:right;font-weight:600;">{stats.get('submitted', 0)}</td>
        </tr>
    </table>
    <p style="color:{style['text']};">Please follow up with your team for additional coaching.</p>
</div>'''
    return subject, text, html_body
