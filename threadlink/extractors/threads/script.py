"""
In-page extraction function.

Runs inside the rendered page through `page.evaluate`, so it shares nothing
with Python and must return plain JSON-serialisable data. The post markup has
no stable class names: the live post is the first `[data-interactive-id]`
container, counters are found by their icon's accessible label, and an image
immediately followed by a video is that video's thumbnail.
"""

LIVE_POST_SELECTOR = "[data-interactive-id]"

COUNTER_LABELS = {
    "like": "Like",
    "reply": "Reply",
    "repost": "Repost",
    "share": "Share",
}

EXTRACT_POST_JS = """
(labels) => {
    const container = document.querySelectorAll('[data-interactive-id]')[0];
    if (!container) return null;

    const metaContent = (name) => {
        const el = document.querySelector(`meta[property="${name}"], meta[name="${name}"]`);
        return el ? el.getAttribute('content') : null;
    };

    let description = null;
    const heading = container.querySelector('h1');
    if (heading) {
        description = Array.from(heading.childNodes)
            .filter(node => node.nodeType === Node.TEXT_NODE)
            .map(node => node.textContent)
            .join('');
    }

    const profile = container.querySelector('img[alt*="profile picture" i]');
    const time = container.querySelector('time[datetime]');

    const counter = (label) => {
        const icon = container.querySelector(`svg[aria-label="${label}"]`);
        if (!icon) return null;
        const holder = icon.closest('[role="button"]') || icon.parentElement;
        const text = holder ? (holder.innerText || '').trim() : '';
        return text || null;
    };
    const engagement = {};
    Object.keys(labels).forEach(key => { engagement[key] = counter(labels[key]); });

    const media = [];
    const seen = new Set();
    const push = (kind, url, alt) => {
        if (!url || seen.has(url)) return;
        seen.add(url);
        media.push({ kind, url, alt: alt || null });
    };
    const nextHoldsVideo = (el) => {
        const holder = el.closest('picture') || el;
        const next = holder.nextElementSibling;
        return !!next && (next.tagName === 'VIDEO' || next.querySelector('video') !== null);
    };

    container.querySelectorAll('picture img, img[height="100%"], video').forEach(el => {
        if (el.tagName === 'VIDEO') {
            const source = el.querySelector('source');
            push('video', el.currentSrc || el.src || (source ? source.src : null), null);
            return;
        }
        if (el === profile) return;
        push(nextHoldsVideo(el) ? 'thumbnail' : 'photo', el.currentSrc || el.src, el.alt);
    });

    return {
        description,
        title: metaContent('og:title'),
        profileImageUrl: profile ? profile.src : null,
        createdAt: time ? time.getAttribute('datetime') : null,
        engagement,
        media,
    };
}
"""
