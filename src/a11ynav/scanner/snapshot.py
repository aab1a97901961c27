"""Collects the read-only DOM snapshot the heuristic suite runs against."""

from __future__ import annotations

from typing import Any

from a11ynav.schemas.dom import DomSnapshot

SNAPSHOT_SCRIPT = r"""() => {
    const snippet = (el, n = 200) => el.outerHTML.substring(0, n);
    const pathOf = (el) => {
        const parts = [];
        let node = el;
        while (node && node.nodeType === 1 && parts.length < 5) {
            let part = node.tagName.toLowerCase();
            if (node.id) {
                parts.unshift(part + '#' + node.id);
                break;
            }
            const parent = node.parentElement;
            if (parent) {
                const same = [...parent.children].filter(c => c.tagName === node.tagName);
                if (same.length > 1) part += `:nth-of-type(${same.indexOf(node) + 1})`;
            }
            parts.unshift(part);
            node = parent;
        }
        return parts.join(' > ');
    };
    const ref = (el, n) => ({html: snippet(el, n), target: pathOf(el)});

    // Elements carrying an explicit role
    const role_elements = [...document.querySelectorAll('[role]')].slice(0, 500).map(el => ({
        ...ref(el),
        role: el.getAttribute('role') || '',
        aria_label: el.getAttribute('aria-label') || '',
        aria_labelledby: el.getAttribute('aria-labelledby') || '',
    }));

    // Text elements with their resolved colours
    const transparent = (c) => !c || c === 'transparent' || c === 'rgba(0, 0, 0, 0)';
    const effectiveBackground = (el) => {
        for (let node = el; node && node.nodeType === 1; node = node.parentElement) {
            const bg = getComputedStyle(node).backgroundColor;
            if (!transparent(bg)) return bg;
        }
        return 'rgb(255, 255, 255)';
    };
    const ownText = (el) => [...el.childNodes].some(n => n.nodeType === 3 && n.textContent.trim());
    const text_styles = [];
    const textSelector = 'p, h1, h2, h3, h4, h5, h6, span, div, a, button, li, label, td';
    for (const el of document.querySelectorAll(textSelector)) {
        if (text_styles.length >= 2000) break;
        if (!ownText(el)) continue;
        const styles = getComputedStyle(el);
        text_styles.push({
            ...ref(el, 100),
            font_size_px: parseFloat(styles.fontSize) || 16,
            font_weight: String(styles.fontWeight),
            color: styles.color,
            background_color: effectiveBackground(el),
        });
    }

    // Headings in document order
    const headings = [...document.querySelectorAll('h1, h2, h3, h4, h5, h6')].map(h => ({
        ...ref(h),
        level: parseInt(h.tagName.substring(1)),
    }));

    const has_skip_link = !!document.querySelector(
        'a[href^="#main"], a[href^="#content"], a[href^="#skip"], [role="navigation"] a[href^="#"]'
    );

    // Labelable form controls, inside or outside forms
    const unlabelable = new Set(['hidden', 'submit', 'button', 'reset', 'image']);
    const controls = [...document.querySelectorAll('input, select, textarea')]
        .filter(el => !(el.tagName === 'INPUT' && unlabelable.has((el.type || '').toLowerCase())))
        .map(el => ({
            ...ref(el),
            control_type: el.tagName === 'INPUT' ? (el.type || 'text') : el.tagName.toLowerCase(),
            has_label: !!((el.labels && el.labels.length)
                || (el.getAttribute('aria-label') || '').trim()
                || (el.getAttribute('aria-labelledby') || '').trim()),
            required: el.hasAttribute('required'),
            aria_required: el.hasAttribute('aria-required'),
        }));

    const forms = [...document.querySelectorAll('form')].map(form => ({
        ...ref(form, 100),
        has_submit: !!form.querySelector(
            'input[type="submit"], button[type="submit"], button:not([type])'
        ),
        has_error_affordance: !!form.querySelector(
            '[aria-invalid], [role="alert"], [class*="error"]'
        ),
    }));

    // Style rules targeting :focus (cross-origin sheets are unreadable)
    const focus_rules = [];
    const walk = (rules) => {
        for (const rule of rules) {
            if (rule.selectorText && rule.selectorText.includes(':focus')) {
                focus_rules.push(rule.cssText);
            } else if (rule.cssRules) {
                walk(rule.cssRules);
            }
        }
    };
    for (const sheet of document.styleSheets) {
        try {
            walk(sheet.cssRules || []);
        } catch (e) {
            // Cross-origin stylesheet, skip
        }
    }

    const focusable = 'button, [href], input, select, textarea, [tabindex]:not([tabindex="-1"])';
    const dialogs = [...document.querySelectorAll(
        '[role="dialog"], [role="alertdialog"], [aria-modal="true"], dialog, .modal'
    )].map(el => ({...ref(el, 100), focusable_count: el.querySelectorAll(focusable).length}));

    return {
        role_elements, text_styles, headings, has_skip_link,
        controls, forms, focus_rules, dialogs,
    };
}"""


async def collect_snapshot(page: Any) -> DomSnapshot:
    """Evaluate ``SNAPSHOT_SCRIPT`` on a loaded page. Never mutates the page."""
    raw = await page.evaluate(SNAPSHOT_SCRIPT)
    return DomSnapshot.model_validate(raw)
